"""DocumentSyncEngine — keeps the text buffer and the chart in step.

Text to chart: a buffer change while ``IDLE`` runs :meth:`refresh`
(parse, validate, render). A failure at any step reports the problem and
leaves the previous render on screen.

Chart to text: a structural gesture re-parses the *current* text, mutates
the record list, regenerates the whole document and replaces the buffer
while in ``PROGRAMMATIC_UPDATE``. The buffer notifies synchronously, so
the change event arrives inside the guard and is suppressed; the engine
then returns to ``IDLE`` and runs exactly one intentional refresh.
Gesture side effects (the swap log line, exchanging cached positions)
therefore happen once per gesture.

No public method raises. Everything ends in a :class:`ServiceResult`.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Any, ParamSpec

from ychart.config.models import ChartOptions, resolve_options
from ychart.domain.errors import ParseError, ReorderError, RenderError
from ychart.domain.frontmatter import ParsedDocument, parse_document, render_document
from ychart.domain.hierarchy import build_forest, move_sibling, nest, roots, swap_records
from ychart.domain.records import Record, display_fields, find_index, id_key, parse_records
from ychart.domain.types import Direction, SyncState, ViewMode
from ychart.domain.validation import ValidationIssue, ValidationResult, validate_document
from ychart.infrastructure.buffer import TextBuffer
from ychart.infrastructure.positions import Position
from ychart.services.chart import ChartAdapter, ContentOverride
from ychart.services.result import (
    EMPTY_DATA,
    INTERNAL_ERROR,
    INVALID_ARGUMENT,
    NOT_FOUND,
    PARSE_ERROR,
    RENDER_ERROR,
    VALIDATION_FAILED,
    ServiceResult,
    failure,
)
from ychart.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class _Abort(Exception):
    """Carries a failed ServiceResult out of a pipeline step."""

    def __init__(self, result: ServiceResult) -> None:
        super().__init__(result.error.message if result.error else result.op)
        self.result = result


_P = ParamSpec("_P")


def _never_raises(op: str) -> Callable[[Callable[_P, ServiceResult]], Callable[_P, ServiceResult]]:
    """Turn aborts and unexpected exceptions into failed results."""

    def decorator(func: Callable[_P, ServiceResult]) -> Callable[_P, ServiceResult]:
        @functools.wraps(func)
        def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> ServiceResult:
            try:
                return func(*args, **kwargs)
            except _Abort as abort:
                return abort.result
            except Exception as exc:
                logger.exception("Unexpected error in %s", op)
                return failure(op, INTERNAL_ERROR, f"{type(exc).__name__}: {exc}")

        return wrapper

    return decorator


class DocumentSyncEngine:
    """Bidirectional text/chart synchronization over one buffer."""

    def __init__(
        self,
        buffer: TextBuffer,
        adapter: ChartAdapter,
        *,
        defaults: ChartOptions | None = None,
    ) -> None:
        self.buffer = buffer
        self.adapter = adapter
        self.defaults = defaults or ChartOptions()
        self.state = SyncState.IDLE
        self.last_result: ServiceResult | None = None
        self.last_validation: ValidationResult | None = None
        self.last_gesture: ServiceResult | None = None
        self.selected: dict[str, Any] | None = None
        self.refresh_count = 0
        self.suppressed_count = 0
        self._subscriptions = [
            buffer.on_change(self._on_buffer_change),
            adapter.on_swap(self._on_swap_gesture),
            adapter.on_select(self._on_select),
        ]

    # ------------------------------------------------------------------
    # Re-entrancy guard
    # ------------------------------------------------------------------

    @contextmanager
    def _programmatic_update(self) -> Generator[None]:
        self.state = SyncState.PROGRAMMATIC_UPDATE
        try:
            yield
        finally:
            self.state = SyncState.IDLE

    def _replace_text(self, text: str) -> None:
        with self._programmatic_update():
            self.buffer.replace_all(text)

    def _on_buffer_change(self, _text: str) -> None:
        if self.state is SyncState.PROGRAMMATIC_UPDATE:
            self.suppressed_count += 1
            logger.debug("Suppressed buffer change during programmatic update")
            return
        self.refresh()

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self, op: str) -> tuple[ParsedDocument, list[Record]]:
        parsed = parse_document(self.buffer.get_text())
        if not parsed.data_text.strip():
            raise _Abort(failure(op, EMPTY_DATA, "Document has no data records"))
        try:
            records = parse_records(parsed.data_text)
        except ParseError as exc:
            raise _Abort(failure(op, PARSE_ERROR, str(exc))) from exc
        return parsed, records

    # ------------------------------------------------------------------
    # Text -> chart
    # ------------------------------------------------------------------

    @traced
    @_never_raises("load_document")
    def load_document(self, text: str) -> ServiceResult:
        """Replace the buffer with *text* and render it once."""
        self._replace_text(text)
        result = self.refresh()
        return result.model_copy(update={"op": "load_document"})

    def get_document(self) -> str:
        return self.buffer.get_text()

    @traced
    @_never_raises("refresh")
    def refresh(self) -> ServiceResult:
        """Parse, validate and render the current text."""
        self.refresh_count += 1
        result = self._refresh()
        self.last_result = result
        return result

    def _refresh(self) -> ServiceResult:
        op = "refresh"
        try:
            with trace_span("parse"):
                parsed, records = self._parse(op)
        except _Abort as abort:
            self.last_validation = None
            return abort.result
        if not records:
            self.last_validation = None
            return failure(op, EMPTY_DATA, "Document has no data records")

        front_matter = parsed.front_matter
        with trace_span("validate"):
            validation = validate_document(records, front_matter.schema)
        self.last_validation = validation
        if validation.blocking:
            logger.debug("Validation failed with %d issue(s)", len(validation.issues))
            return failure(
                op,
                VALIDATION_FAILED,
                f"Validation failed with {len(validation.errors)} error(s)",
                detail={
                    "errors": validation.errors,
                    "issues": [_issue_dict(issue) for issue in validation.issues],
                },
                warnings=validation.warnings,
            )

        options = resolve_options(self.defaults, front_matter.options)
        try:
            with trace_span("render"):
                self.adapter.render(records, options, front_matter.card)
        except RenderError as exc:
            return failure(op, RENDER_ERROR, str(exc))

        forest = build_forest(records)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "records": len(records),
                "roots": roots(forest),
                "view": str(self.adapter.view),
                "tree": nest(forest),
            },
            warnings=[*validation.errors, *validation.warnings],
        )

    def validate(self) -> ValidationResult:
        """Validate the current text without rendering. Never raises."""
        parsed = parse_document(self.buffer.get_text())
        try:
            records = parse_records(parsed.data_text)
        except ParseError as exc:
            issue = ValidationIssue(code="parse_error", index=0, message=str(exc))
            return ValidationResult.from_issues([issue])
        return validate_document(records, parsed.front_matter.schema)

    # ------------------------------------------------------------------
    # Chart -> text
    # ------------------------------------------------------------------

    def _apply_gesture(
        self,
        op: str,
        mutate: Callable[[list[Record]], list[Record]],
        data: dict[str, Any],
        after: Callable[[list[Record]], None] | None = None,
    ) -> ServiceResult:
        parsed, records = self._parse(op)
        try:
            updated = mutate(records)
        except ReorderError as exc:
            return failure(op, exc.code, str(exc), detail=data)

        text = render_document(parsed.front_matter, updated)
        self._replace_text(text)
        if after is not None:
            after(records)
        rendered = self.refresh()
        warnings = [rendered.error.message] if rendered.error is not None else []
        result = ServiceResult(
            ok=True,
            op=op,
            data={**data, "rendered": rendered.ok},
            warnings=warnings,
        )
        self.last_gesture = result
        return result

    @traced
    @_never_raises("move_sibling")
    def move_sibling(self, record_id: Any, direction: Direction | str) -> ServiceResult:
        """Move a record one place up or down among its siblings."""
        try:
            direction = Direction(direction)
        except ValueError:
            return failure("move_sibling", INVALID_ARGUMENT, f"Unknown direction {direction!r}")
        return self._apply_gesture(
            "move_sibling",
            lambda records: move_sibling(records, record_id, direction),
            {"id": id_key(record_id), "direction": str(direction)},
        )

    @traced
    @_never_raises("swap_records")
    def swap_records(self, id_a: Any, id_b: Any) -> ServiceResult:
        """Exchange the array positions of two records."""
        key_a, key_b = id_key(id_a), id_key(id_b)

        def log_swap(records: list[Record]) -> None:
            index_a, index_b = find_index(records, key_a), find_index(records, key_b)
            name_a = records[index_a].name if index_a is not None else key_a
            name_b = records[index_b].name if index_b is not None else key_b
            logger.info("Nodes swapped: %s <-> %s", name_a, name_b)
            if key_a is not None and key_b is not None:
                self.adapter.exchange_positions(key_a, key_b)

        return self._apply_gesture(
            "swap_records",
            lambda records: swap_records(records, id_a, id_b),
            {"ids": [key_a, key_b]},
            after=log_swap,
        )

    def _on_swap_gesture(self, id_a: str, id_b: str) -> None:
        self.swap_records(id_a, id_b)

    @traced
    @_never_raises("format_document")
    def format_document(self, *, check_only: bool = False) -> ServiceResult:
        """Rewrite the buffer in canonical form.

        With *check_only* the buffer is left alone and ``changed`` reports
        whether formatting would rewrite it.
        """
        op = "format_document"
        text = self.buffer.get_text()
        parsed, records = self._parse(op)
        formatted = render_document(parsed.front_matter, records)
        changed = formatted != text
        if changed and not check_only:
            self._replace_text(formatted)
            self.refresh()
        return ServiceResult(ok=True, op=op, data={"changed": changed, "records": len(records)})

    # ------------------------------------------------------------------
    # View and content
    # ------------------------------------------------------------------

    @traced
    @_never_raises("switch_view")
    def switch_view(self, mode: ViewMode | str) -> ServiceResult:
        op = "switch_view"
        try:
            view = ViewMode(mode)
        except ValueError:
            return failure(op, INVALID_ARGUMENT, f"Unknown view {mode!r}")
        try:
            self.adapter.switch_view(view)
        except RenderError as exc:
            return failure(op, RENDER_ERROR, str(exc))
        return ServiceResult(ok=True, op=op, data={"view": str(view)})

    @_never_raises("set_content_override")
    def set_content_override(self, override: ContentOverride | None) -> ServiceResult:
        """Install (or clear with None) a per-record markup function."""
        self.adapter.set_content_override(override)
        if self.adapter.state is not None and self.adapter.state.rendered:
            rendered = self.refresh()
            if not rendered.ok:
                return rendered.model_copy(update={"op": "set_content_override"})
        return ServiceResult(
            ok=True, op="set_content_override", data={"override": override is not None}
        )

    @_never_raises("enable_reorder_mode")
    def enable_reorder_mode(self, enabled: bool) -> ServiceResult:
        self.adapter.enable_reorder_mode(enabled)
        return ServiceResult(ok=True, op="enable_reorder_mode", data={"enabled": enabled})

    # ------------------------------------------------------------------
    # Selection and positions
    # ------------------------------------------------------------------

    @traced
    @_never_raises("select")
    def select(self, record_id: Any) -> ServiceResult:
        """Displayable fields of one record."""
        op = "select"
        _, records = self._parse(op)
        index = find_index(records, record_id)
        if index is None:
            return failure(op, NOT_FOUND, f"Node {id_key(record_id)!r} not found")
        fields = display_fields(records[index])
        self.selected = fields
        return ServiceResult(
            ok=True, op=op, data={"id": id_key(record_id), "index": index, "fields": fields}
        )

    def _on_select(self, record: Record) -> None:
        self.selected = display_fields(record)

    @_never_raises("set_position")
    def set_position(self, record_id: Any, x: float, y: float) -> ServiceResult:
        """Pin a node at ``(x, y)`` in the tree view."""
        key = id_key(record_id)
        if key is None:
            return failure("set_position", NOT_FOUND, "Node id is required")
        self.adapter.set_position(key, Position(x, y))
        self._rerender("set_position")
        return ServiceResult(ok=True, op="set_position", data={"id": key, "x": x, "y": y})

    @_never_raises("reset_positions")
    def reset_positions(self) -> ServiceResult:
        """Forget every saved position and lay the tree out again."""
        self.adapter.reset_positions()
        self._rerender("reset_positions")
        return ServiceResult(ok=True, op="reset_positions")

    def _rerender(self, op: str) -> None:
        try:
            self.adapter.rerender()
        except RenderError as exc:
            raise _Abort(failure(op, RENDER_ERROR, str(exc))) from exc

    def close(self) -> None:
        """Stop listening to the buffer and tear the chart down."""
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self.adapter.teardown()


def _issue_dict(issue: ValidationIssue) -> dict[str, Any]:
    return {
        "code": issue.code,
        "index": issue.index,
        "field": issue.field,
        "message": issue.message,
        "blocking": issue.blocking,
    }
