"""Command: render a document to a standalone HTML page."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from ychart.commands._base import YChartCommand

if TYPE_CHECKING:
    from ychart.commands._context import AppContext


def default_output(file: Path) -> Path:
    return file.with_suffix(".html")


@click.command(
    cls=YChartCommand,
    examples="""\
  ychart render org.yaml
  ychart render org.yaml -o public/org.html
  ychart render org.yaml --view graph --title Engineering""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output HTML file (default: FILE with .html suffix).",
)
@click.option(
    "--view",
    type=click.Choice(["tree", "graph"]),
    default=None,
    help="Chart view (default from config).",
)
@click.option("--title", default=None, help="Page title.")
@click.pass_obj
def render(
    app: AppContext,
    file: Path,
    output: Path | None,
    view: str | None,
    title: str | None,
) -> None:
    """Render the org chart to HTML."""
    from ychart.services.documents import export_html

    sync = app.open_document(file)
    try:
        switched = sync.switch_view(view or app.settings.export.view)
        if not switched.ok:
            app.emit(switched)
            return
        rendered = sync.refresh()
        app.settle()
        if not rendered.ok:
            # Still write the page so the errors are visible in the browser.
            app.emit(rendered, fatal=False)
        result = export_html(
            sync,
            output or default_output(file),
            title=title or app.settings.export.title,
            project_root=app.settings.project_root,
        )
        app.emit(result)
        if not rendered.ok:
            raise SystemExit(1)
    finally:
        sync.close()
