"""Rich Console factory and theme for plugrest output.

Consoles render into a StringIO buffer so formatters keep a
``-> str`` contract.  Rich disables color codes when not on a TTY.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

PLUG_THEME = Theme(
    {
        "plug.ok": "bold green",
        "plug.error": "bold red",
        "plug.warning": "bold yellow",
        "plug.op": "bold cyan",
        "plug.key": "dim",
        "plug.id": "bold blue",
        "plug.channel": "magenta",
        "plug.time": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    return Console(
        file=StringIO(),
        theme=PLUG_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
