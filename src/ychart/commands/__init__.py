"""Subcommand modules for ychart.

Provides register_commands() which uses deferred imports to keep
``ychart --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from ychart.commands.positions import positions

    cli.add_command(positions)

    # --- Standalone commands ---
    from ychart.commands.check import check
    from ychart.commands.fmt import fmt
    from ychart.commands.init_cmd import init_cmd
    from ychart.commands.move import move
    from ychart.commands.render import render
    from ychart.commands.show import show
    from ychart.commands.swap import swap
    from ychart.commands.watch import watch

    cli.add_command(init_cmd)
    cli.add_command(check)
    cli.add_command(show)
    cli.add_command(render)
    cli.add_command(move)
    cli.add_command(swap)
    cli.add_command(fmt)
    cli.add_command(watch)
