"""Command group: saved tree node positions."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from ychart.commands._base import YChartCommand, YChartGroup

if TYPE_CHECKING:
    from ychart.commands._context import AppContext


@click.group(
    cls=YChartGroup,
    examples="""\
  ychart positions set org.yaml 3 400 120
  ychart positions reset org.yaml""",
)
def positions() -> None:
    """Pin or reset node positions in the tree view."""


@positions.command(
    "set",
    cls=YChartCommand,
    examples="""\
  ychart positions set org.yaml 3 400 120""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("record_id", metavar="ID")
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.pass_obj
def set_position(app: AppContext, file: Path, record_id: str, x: float, y: float) -> None:
    """Pin node ID at (X, Y)."""
    sync = app.open_document(file)
    try:
        rendered = sync.refresh()
        if not rendered.ok:
            app.emit(rendered)
            return
        app.emit(sync.set_position(record_id, x, y))
    finally:
        sync.close()


@positions.command(
    "reset",
    cls=YChartCommand,
    examples="""\
  ychart positions reset org.yaml""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def reset_positions(app: AppContext, file: Path) -> None:
    """Forget every saved position."""
    sync = app.open_document(file)
    try:
        app.emit(sync.reset_positions())
    finally:
        sync.close()
