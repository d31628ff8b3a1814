"""Command: starter document creation (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from ychart.commands._base import YChartCommand

if TYPE_CHECKING:
    from ychart.commands._context import AppContext

_INIT_EXAMPLES = """\
  ychart init org.yaml
  ychart init charts/team.yaml --name "Ada Park"
  ychart init org.yaml --force"""


@click.command("init", cls=YChartCommand, examples=_INIT_EXAMPLES)
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Name of the root record.")
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
@click.pass_obj
def init_cmd(app: AppContext, file: Path, name: str | None, force: bool) -> None:
    """Write a starter org chart document."""
    from ychart.services.documents import DEFAULT_ROOT_NAME, create_document

    app.emit(
        create_document(
            file,
            options=app.settings.chart,
            root_name=name or DEFAULT_ROOT_NAME,
            force=force,
            project_root=app.settings.project_root,
        )
    )
