"""Command group: publish, read and delete channel data."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import click

from plugrest.commands._base import PlugGroup

if TYPE_CHECKING:
    from plugrest.commands._context import AppContext

_DATA_EXAMPLES = """\
  plugrest data publish home/temp 21.5
  plugrest data get 'home/+/temp' --limit 10
  plugrest data rm home/temp --before 2024-01-01T00:00:00Z
  plugrest data channels '#'"""


def parse_value(raw: str) -> Any:
    """Decode *raw* as JSON, keeping it as a plain string when it is not.

    Examples:
        >>> parse_value("21.5"), parse_value('{"on": true}'), parse_value("hello")
        (21.5, {'on': True}, 'hello')
    """
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _filter_options(func: Any) -> Any:
    """Attach the ``--of/--before/--after/--at`` filters shared by data commands."""
    func = click.option(
        "--at", default=None, help="Comma-separated timestamps of the entries."
    )(func)
    func = click.option(
        "--after", default=None, help="Only entries after this timestamp or oid."
    )(func)
    func = click.option(
        "--before", default=None, help="Only entries before this timestamp or oid."
    )(func)
    func = click.option(
        "--of", multiple=True, help="Publisher plug-id (repeatable)."
    )(func)
    return func


def _page_options(func: Any) -> Any:
    func = click.option("--limit", type=int, default=None, help="Maximum entries.")(func)
    func = click.option("--offset", type=int, default=None, help="Entries to skip.")(func)
    return func


@click.group(cls=PlugGroup, examples=_DATA_EXAMPLES)
def data() -> None:
    """Publish and query channel data."""


@data.command(
    examples="""\
  plugrest data publish home/temp 21.5
  plugrest data publish home/door '{"open": true}' --ttl 3600
  plugrest data publish log/boot ok --at 2024-05-01T12:00:00Z"""
)
@click.argument("channel")
@click.argument("value")
@click.option("--at", default=None, help="Timestamp of the entry (default: now).")
@click.option("--ttl", type=int, default=None, help="Seconds before the entry expires.")
@click.option("--expire-at", default=None, help="Absolute expiry timestamp.")
@click.option("--id", "entry_id", default=None, help="Oid of an entry to overwrite.")
@click.pass_obj
def publish(
    app: AppContext,
    channel: str,
    value: str,
    at: str | None,
    ttl: int | None,
    expire_at: str | None,
    entry_id: str | None,
) -> None:
    """Publish VALUE (JSON, or a plain string) on CHANNEL."""
    from plugrest.services.data import DataService

    app.emit(
        DataService(app.client).publish(
            channel,
            parse_value(value),
            at=at,
            ttl=ttl,
            expire_at=expire_at,
            entry_id=entry_id,
        )
    )


@data.command(
    "get",
    examples="""\
  plugrest data get home/temp
  plugrest data get 'home/+/temp' --of dev-abc --limit 10
  plugrest --json data get '#' --after 2024-05-01T00:00:00Z""",
)
@click.argument("channel_mask")
@_filter_options
@_page_options
@click.pass_obj
def get_data(
    app: AppContext,
    channel_mask: str,
    of: tuple[str, ...],
    before: str | None,
    after: str | None,
    at: str | None,
    offset: int | None,
    limit: int | None,
) -> None:
    """Read the data published on channels matching CHANNEL_MASK."""
    from plugrest.services.data import DataService

    app.emit(
        DataService(app.client).retrieve(
            channel_mask,
            of=list(of) or None,
            before=before,
            after=after,
            at=at,
            offset=offset,
            limit=limit,
        )
    )


@data.command(
    "rm",
    examples="""\
  plugrest data rm --id 5f1d7c2e9b1e8a0012345678
  plugrest data rm home/temp --before 2024-01-01T00:00:00Z
  plugrest data rm --at 1500000000000,1500000060000""",
)
@click.argument("channel_mask", required=False)
@click.option("--id", "ids", multiple=True, help="Oid of an entry to delete (repeatable).")
@_filter_options
@click.pass_obj
def remove(
    app: AppContext,
    channel_mask: str | None,
    ids: tuple[str, ...],
    of: tuple[str, ...],
    before: str | None,
    after: str | None,
    at: str | None,
) -> None:
    """Delete entries selected by --id, --before, --after or --at.

    CHANNEL_MASK defaults to every channel.
    """
    from plugrest.services.data import DataService

    app.emit(
        DataService(app.client).remove(
            channel_mask,
            id=list(ids) or None,
            of=list(of) or None,
            before=before,
            after=after,
            at=at,
        )
    )


@data.command(
    examples="""\
  plugrest data channels '#'
  plugrest data channels 'home/+' --of dev-abc"""
)
@click.argument("channel_mask")
@_filter_options
@_page_options
@click.pass_obj
def channels(
    app: AppContext,
    channel_mask: str,
    of: tuple[str, ...],
    before: str | None,
    after: str | None,
    at: str | None,
    offset: int | None,
    limit: int | None,
) -> None:
    """List channels matching CHANNEL_MASK that hold data."""
    from plugrest.services.data import DataService

    app.emit(
        DataService(app.client).channels(
            channel_mask,
            of=list(of) or None,
            before=before,
            after=after,
            at=at,
            offset=offset,
            limit=limit,
        )
    )
