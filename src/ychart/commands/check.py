"""Command: document validation."""

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
  ychart check org.yaml
  ychart --json check org.yaml""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def check(app: AppContext, file: Path) -> None:
    """Validate a document against its schema and hierarchy rules."""
    from ychart.services.documents import check_document

    app.emit(check_document(file.read_text(encoding="utf-8")))
