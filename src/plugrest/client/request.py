"""Request descriptors, header composition, URL helpers, response decoding.

Everything here is pure: the dispatcher in :mod:`plugrest.client.rest`
combines these pieces with a transport.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from plugrest.client.credentials import Credentials
from plugrest.domain.types import JSON_CONTENT_TYPE, Header, HttpMethod
from plugrest.errors import HttpStatus, MissingCredentials, PlugError

# Characters encodeURI leaves alone, minus "?" and "#" which must not
# survive inside a channel path segment.
_CHANNEL_SAFE = ";,/:@&=+$!~*'()"
_COMPONENT_SAFE = "!~*'()"

FILTER_FIELDS = ("before", "after", "at", "of", "offset", "limit")


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to issue one request.

    Attributes:
        method: HTTP verb.
        uri: Path relative to the client's base URL.
        body: JSON-serializable payload (only sent when ``has_body``).
        has_body: Distinguishes "no body" from a JSON ``null`` body.
        auth: Require any credentials.
        master: Require master credentials.
        post_only: Force method override for this call.
    """

    method: HttpMethod
    uri: str
    body: Any = None
    has_body: bool = False
    auth: bool = True
    master: bool = False
    post_only: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", HttpMethod(self.method))

    @classmethod
    def with_body(cls, method: HttpMethod, uri: str, body: Any, **kwargs: Any) -> RequestDescriptor:
        return cls(method=method, uri=uri, body=body, has_body=True, **kwargs)


@dataclass(frozen=True)
class Reply:
    """Decoded response: what the continuation receives, plus the status."""

    status: int | None
    error: PlugError | None
    body: Any

    @property
    def ok(self) -> bool:
        return self.error is None


def ensure_authorized(descriptor: RequestDescriptor, credentials: Credentials) -> None:
    """Raise :class:`MissingCredentials` if *descriptor* cannot be sent."""
    if descriptor.master:
        if not credentials.is_master:
            raise MissingCredentials("missing credentials: master authentication required")
    elif descriptor.auth and credentials.identity is None:
        raise MissingCredentials("missing credentials")


def build_headers(
    credentials: Credentials,
    method: HttpMethod,
    *,
    post_only: bool = False,
) -> tuple[dict[str, str], HttpMethod]:
    """Compose request headers and the method actually sent on the wire."""
    headers: dict[str, str] = {}
    if credentials.password:
        if credentials.is_master:
            headers[Header.MASTER] = credentials.password
            if credentials.plug_id:
                headers[Header.PLUG_ID] = credentials.plug_id
            elif credentials.email:
                headers[Header.EMAIL] = credentials.email
        elif credentials.plug_id:
            headers[Header.PLUG_ID] = credentials.plug_id
            headers[Header.AUTH] = credentials.password

    sent = method
    if post_only and method is not HttpMethod.POST:
        headers[Header.METHOD_OVERRIDE] = method.value
        sent = HttpMethod.POST

    headers[Header.CONTENT_TYPE] = JSON_CONTENT_TYPE
    return {str(k): v for k, v in headers.items()}, sent


def encode_body(descriptor: RequestDescriptor) -> str | None:
    if not descriptor.has_body:
        return None
    return json.dumps(descriptor.body)


def escape_channel(channel: str) -> str:
    """Percent-encode a channel (mask) for use as a URL path.

    Examples:
        >>> escape_channel("home/+/temp")
        'home/+/temp'
        >>> escape_channel("a b/#")
        'a%20b/%23'
    """
    return quote(channel, safe=_CHANNEL_SAFE)


def quote_component(value: Any) -> str:
    return quote(_text(value), safe=_COMPONENT_SAFE)


def _text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(_text(v) for v in value)
    return str(value)


def build_filters(params: Mapping[str, Any], fields: Iterable[str] = FILTER_FIELDS) -> str:
    """Query string for the truthy *fields* of *params* (``""`` if none).

    Examples:
        >>> build_filters({"limit": 10, "offset": 0, "of": "dev-a"})
        '?of=dev-a&limit=10'
    """
    parts = [f"{name}={quote_component(params[name])}" for name in fields if params.get(name)]
    return "?" + "&".join(parts) if parts else ""


def decode_body(text: str) -> Any:
    """JSON-decode *text*, falling back to the raw text."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def decode_response(status: int, text: str) -> Reply:
    error = None if 200 <= status < 300 else HttpStatus(status)
    return Reply(status=status, error=error, body=decode_body(text))
