"""File-level document operations: starter documents, checks and HTML export."""

from __future__ import annotations

import logging
from pathlib import Path

from ychart.config.models import ChartOptions
from ychart.domain.errors import ParseError
from ychart.domain.frontmatter import parse_document
from ychart.domain.records import parse_records
from ychart.domain.validation import validate_document
from ychart.infrastructure.templates import build_template_environment
from ychart.services.result import (
    EMPTY_DATA,
    INVALID_ARGUMENT,
    PARSE_ERROR,
    VALIDATION_FAILED,
    ServiceResult,
    failure,
)
from ychart.services.sync import DocumentSyncEngine
from ychart.services.telemetry import traced

logger = logging.getLogger(__name__)

DEFAULT_ROOT_NAME = "Morgan Chen"


@traced
def create_document(
    path: Path,
    *,
    options: ChartOptions | None = None,
    root_name: str = DEFAULT_ROOT_NAME,
    force: bool = False,
    project_root: Path | None = None,
) -> ServiceResult:
    """Write a starter document to *path*."""
    if path.exists() and not force:
        return failure("init", INVALID_ARGUMENT, f"{path} already exists (use --force)")

    env = build_template_environment("document", project_root=project_root)
    text = env.get_template("starter.yaml.j2").render(
        options=options or ChartOptions(), root_name=root_name
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    records = parse_records(parse_document(text).data_text)
    logger.debug("Wrote starter document %s", path)
    return ServiceResult(ok=True, op="init", data={"path": str(path), "records": len(records)})


@traced
def check_document(text: str) -> ServiceResult:
    """Validate *text* without rendering.

    Blocking issues fail the result; non-blocking ones (dangling parents,
    absent ``missing`` fields) are reported as warnings.
    """
    op = "check"
    parsed = parse_document(text)
    if not parsed.data_text.strip():
        return failure(op, EMPTY_DATA, "Document has no data records")
    try:
        records = parse_records(parsed.data_text)
    except ParseError as exc:
        return failure(op, PARSE_ERROR, str(exc))

    validation = validate_document(records, parsed.front_matter.schema)
    data = {
        "valid": validation.valid,
        "records": len(records),
        "errors": validation.errors,
        "warnings": validation.warnings,
    }
    if validation.blocking:
        return failure(
            op,
            VALIDATION_FAILED,
            f"Validation failed with {len(validation.errors)} error(s)",
            detail={"errors": validation.errors},
            warnings=validation.warnings,
        )
    return ServiceResult(ok=True, op=op, data=data)


@traced
def export_html(
    sync: DocumentSyncEngine,
    output: Path,
    *,
    title: str,
    project_root: Path | None = None,
) -> ServiceResult:
    """Write the current chart as a standalone HTML page.

    The page embeds whatever the chart last rendered successfully, plus
    the errors of the latest refresh if it failed.
    """
    last = sync.last_result
    errors: list[str] = []
    if last is not None and not last.ok and last.error is not None:
        errors = list(last.error.detail.get("errors", [])) or [last.error.message]
    elif last is not None:
        errors = list(last.warnings)

    state = sync.adapter.state
    options = state.options if state is not None else sync.defaults
    env = build_template_environment("export", project_root=project_root)
    page = env.get_template("chart.html.j2").render(
        title=title,
        svg=sync.adapter.to_svg(),
        errors=errors,
        view=str(sync.adapter.view),
        theme=options.editor_theme,
    )
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(page, encoding="utf-8")
    records = len(state.records) if state is not None else 0
    return ServiceResult(
        ok=True,
        op="export_html",
        data={
            "output": str(output),
            "view": str(sync.adapter.view),
            "records": records,
            "errors": len(errors),
        },
    )
