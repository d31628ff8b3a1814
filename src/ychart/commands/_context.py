"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Wires a document file to a sync engine and
centralizes result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from ychart.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from ychart.config.settings import YChartSettings
    from ychart.infrastructure.scheduling import ManualScheduler
    from ychart.services.result import ServiceResult
    from ychart.services.sync import DocumentSyncEngine


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``. Nothing is opened until
    a command asks for a document, so ``--help`` stays cheap.
    """

    def __init__(self, settings: YChartSettings) -> None:
        self.settings = settings
        self._scheduler: ManualScheduler | None = None

        from ychart.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from ychart.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def scheduler(self) -> ManualScheduler:
        if self._scheduler is None:
            from ychart.infrastructure.scheduling import ManualScheduler

            self._scheduler = ManualScheduler()
        return self._scheduler

    def open_document(self, path: Path) -> DocumentSyncEngine:
        """Build a sync engine over the document file at *path*.

        Positions are cached beside the document. The chart is not
        rendered until the caller refreshes.
        """
        from ychart.infrastructure.buffer import FileBuffer
        from ychart.infrastructure.positions import JsonPositionCache
        from ychart.services.chart import ChartAdapter
        from ychart.services.height_sync import NodeHeightSyncService
        from ychart.services.sync import DocumentSyncEngine

        if not path.is_file():
            raise click.BadParameter(f"{path} is not a file", param_hint="FILE")

        root = self.settings.project_root
        adapter = ChartAdapter(
            self.scheduler,
            height_sync=NodeHeightSyncService.from_config(
                self.settings.height_sync, self.scheduler
            ),
            positions=JsonPositionCache(self.settings.positions.path_for(path)),
            project_root=root,
        )
        return DocumentSyncEngine(FileBuffer(path), adapter, defaults=self.settings.chart)

    def settle(self) -> None:
        """Run deferred work (height sync, fit) queued by the last operation."""
        if self._scheduler is not None:
            self._scheduler.run_all()

    def emit(self, result: ServiceResult, *, fatal: bool = True) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr and exits with code 1 unless *fatal*
          is False.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            if fatal:
                raise SystemExit(1)
