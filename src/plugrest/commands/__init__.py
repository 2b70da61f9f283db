"""Subcommand modules for plugrest.

:func:`register_commands` imports lazily to keep ``plugrest --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups on the root CLI group."""
    from plugrest.commands.data import data
    from plugrest.commands.device import device

    cli.add_command(data)
    cli.add_command(device)
