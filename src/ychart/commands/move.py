"""Command: move a record among its siblings."""

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
  ychart move org.yaml 4 up
  ychart move org.yaml 2 down""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("record_id", metavar="ID")
@click.argument("direction", type=click.Choice(["up", "down"]))
@click.pass_obj
def move(app: AppContext, file: Path, record_id: str, direction: str) -> None:
    """Move a record one place up or down among its siblings.

    The document is rewritten in canonical form.
    """
    sync = app.open_document(file)
    try:
        app.emit(sync.move_sibling(record_id, direction))
    finally:
        sync.close()
