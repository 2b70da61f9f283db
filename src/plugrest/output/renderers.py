"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic renderer of ``data["result"]``.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from plugrest.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from plugrest.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render the bare payload for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    payload = result.data.get("result")
    if isinstance(payload, list):
        return "\n".join(_item_id(item) for item in payload)
    if payload is None:
        return ""
    return _compact(payload)


# ── Helpers ───────────────────────────────────────────────────────────


def _compact(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def _item_id(item: Any) -> str:
    """The ``id`` of a dict item (or its ``channel``), else the item itself."""
    if isinstance(item, dict):
        for key in ("id", "channel"):
            if item.get(key) is not None:
                return str(item[key])
    return _compact(item)


def _format_time(value: Any) -> str:
    """Epoch milliseconds as an ISO-8601 UTC string; anything else unchanged."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=UTC).isoformat()
    return "" if value is None else str(value)


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "plug.ok"), "  ", (result.op, "plug.op")))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="plug.key")
    if key == "id" or key == "of":
        v = Text(str(value), style="plug.id")
    elif key == "channel":
        v = Text(str(value), style="plug.channel")
    elif key in ("at", "t", "expire_at"):
        v = Text(_format_time(value), style="plug.time")
    elif isinstance(value, (dict, list)):
        v = Text(_compact(value))
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(f"    {k}: {v}", markup=False)


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text.assemble(("ERROR", "plug.error"), "  ", (result.op, "plug.op"), ": ", msg)
    )

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}", markup=False)


# ── Renderers ─────────────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console) -> None:
    """Status line plus the reply body, whatever its shape."""
    _status_line(console, result)
    payload = result.data.get("result")
    if isinstance(payload, dict):
        for key, value in payload.items():
            _field(console, key, value)
    elif isinstance(payload, list):
        for item in payload:
            console.print(f"  - {_compact(item)}", markup=False)
    elif payload is not None:
        _field(console, "result", payload)
    for key, value in result.data.items():
        if key != "result":
            _field(console, key, value)


def _render_entries(result: ServiceResult, console: Console) -> None:
    """Render retrieve_data results as a table."""
    entries = result.data.get("result") or []
    if not isinstance(entries, list):
        _render_generic(result, console)
        return

    show_of = any(isinstance(e, dict) and "of" in e for e in entries)
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="plug.id", no_wrap=True)
    table.add_column("Channel", style="plug.channel")
    table.add_column("At", style="plug.time")
    if show_of:
        table.add_column("Of", style="plug.id")
    table.add_column("Data")

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        row = [
            str(entry.get("id", "")),
            str(entry.get("channel", "")),
            _format_time(entry.get("at")),
        ]
        if show_of:
            row.append(str(entry.get("of", "")))
        row.append(_compact(entry.get("data")))
        table.add_row(*(Text(cell) for cell in row))

    console.print(table)
    console.print(f"\n{len(entries)} entries")


def _render_channels(result: ServiceResult, console: Console) -> None:
    channels = result.data.get("result") or []
    if not isinstance(channels, list):
        _render_generic(result, console)
        return
    _status_line(console, result)
    for channel in channels:
        console.print(Text(f"  {_item_id(channel)}", style="plug.channel"))


def _render_published(result: ServiceResult, console: Console) -> None:
    """One ``id:`` line per oid assigned to the published entries."""
    _status_line(console, result)
    ids = result.data.get("result")
    for oid in ids if isinstance(ids, list) else [ids]:
        _field(console, "id", oid)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "publish_data": _render_published,
    "retrieve_data": _render_entries,
    "get_channels": _render_channels,
}
