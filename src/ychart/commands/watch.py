"""Command: re-render a document every time it is saved."""

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
  ychart watch org.yaml
  ychart watch org.yaml -o public/org.html""",
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
@click.pass_obj
def watch(app: AppContext, file: Path, output: Path | None, view: str | None) -> None:
    """Watch a document and keep its HTML export up to date.

    Errors are reported without stopping the watcher. The last good
    chart stays in the page until the document renders again.
    """
    from ychart.commands.render import default_output
    from ychart.infrastructure.buffer import FileBuffer
    from ychart.infrastructure.watcher import run_watch_loop
    from ychart.services.documents import export_html

    target = output or default_output(file)
    sync = app.open_document(file)
    buffer = sync.buffer
    assert isinstance(buffer, FileBuffer)

    def publish() -> None:
        app.settle()
        if sync.last_result is not None and not sync.last_result.ok:
            app.emit(sync.last_result, fatal=False)
        app.emit(
            export_html(
                sync,
                target,
                title=app.settings.export.title,
                project_root=app.settings.project_root,
            ),
            fatal=False,
        )

    def on_change() -> None:
        # A reload notifies the sync engine, which refreshes on its own.
        if buffer.reload():
            publish()

    try:
        switched = sync.switch_view(view or app.settings.export.view)
        if not switched.ok:
            app.emit(switched)
        sync.refresh()
        publish()
        if not app.settings.quiet:
            click.echo(f"Watching {file} (Ctrl+C to stop)", err=True)
        run_watch_loop(file, on_change)
    finally:
        sync.close()
