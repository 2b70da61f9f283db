"""Click base classes for plugrest commands.

Every command and group takes an optional ``examples`` text.  When set,
an eager ``--examples`` flag prints those invocations through the plugrest
theme and exits, so ``--help`` stays short.
"""

from __future__ import annotations

from typing import Any

import click
from rich.text import Text

from plugrest.output.console import create_console, get_output

GLOBAL_FLAGS_HINT = "Global flags (--json, -q, -v, --sync, -c) go right after 'plugrest'."


def render_examples(command_path: str, examples: str) -> str:
    """Examples block for *command_path*, one invocation per line."""
    console = create_console()
    console.print(Text(f"Examples for '{command_path}':"), end="\n\n")
    for line in examples.splitlines():
        style = "plug.op" if line.strip().startswith("plugrest") else ""
        console.print(Text(line, style=style), soft_wrap=True)
    console.print()
    console.print(Text(GLOBAL_FLAGS_HINT, style="dim"))
    return get_output(console)


class ExamplesMixin:
    """Adds the ``examples`` keyword and its ``--examples`` flag."""

    params: list[click.Parameter]

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or not self.examples:
            return
        click.echo(render_examples(ctx.command_path, self.examples), nl=False)
        ctx.exit(0)


class PlugCommand(ExamplesMixin, click.Command):
    pass


class PlugGroup(ExamplesMixin, click.Group):
    """Group whose subcommands are :class:`PlugCommand` and nested groups
    :class:`PlugGroup` without an explicit ``cls=``."""

    command_class = PlugCommand
    group_class = type
