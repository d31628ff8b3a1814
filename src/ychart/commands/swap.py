"""Command: exchange two records' positions."""

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
  ychart swap org.yaml 2 3""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("id_a", metavar="A")
@click.argument("id_b", metavar="B")
@click.pass_obj
def swap(app: AppContext, file: Path, id_a: str, id_b: str) -> None:
    """Swap the array positions of records A and B.

    Saved tree positions of the two nodes are exchanged as well.
    """
    sync = app.open_document(file)
    try:
        app.emit(sync.swap_records(id_a, id_b))
    finally:
        sync.close()
