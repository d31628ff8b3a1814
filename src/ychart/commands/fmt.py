"""Command: rewrite a document in canonical form."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from ychart.commands._base import YChartCommand

if TYPE_CHECKING:
    from ychart.commands._context import AppContext


@click.command(
    cls=YChartCommand,
    examples="""\
  ychart fmt org.yaml
  ychart fmt org.yaml --check""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--check", "check_only", is_flag=True, help="Exit 1 if the file would change.")
@click.pass_obj
def fmt(app: AppContext, file: Path, check_only: bool) -> None:
    """Format a document."""
    sync = app.open_document(file)
    try:
        result = sync.format_document(check_only=check_only)
        app.emit(result)
        if check_only and result.data.get("changed"):
            raise SystemExit(1)
    finally:
        sync.close()
