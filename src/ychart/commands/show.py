"""Command: print the hierarchy, or one record's fields."""

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
  ychart show org.yaml
  ychart show org.yaml --id 3
  ychart -q show org.yaml""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--id", "record_id", default=None, help="Show the fields of one record.")
@click.pass_obj
def show(app: AppContext, file: Path, record_id: str | None) -> None:
    """Show the org chart hierarchy."""
    sync = app.open_document(file)
    try:
        if record_id is not None:
            app.emit(sync.select(record_id))
            return
        result = sync.refresh()
        app.emit(result.model_copy(update={"op": "show"}) if result.ok else result)
    finally:
        sync.close()
