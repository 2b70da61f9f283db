"""HTTP transport abstraction.

The client only needs one capability from the network: send a request,
get back a status code and body text.  :class:`RequestsTransport` is the
default implementation; tests and alternative environments inject their
own object satisfying :class:`Transport`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import certifi
import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Raw outcome of one HTTP exchange."""

    status: int
    text: str


@runtime_checkable
class Transport(Protocol):
    """Anything able to perform a single HTTP exchange."""

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: str | None,
    ) -> TransportResponse: ...

    def close(self) -> None: ...


def resolve_verify(*, accept_unauthorized: bool = False, dont_load_ca: bool = False) -> bool | str:
    """Translate trust options into a ``requests`` ``verify`` value.

    * ``accept_unauthorized`` disables certificate verification.
    * Otherwise the bundled certifi store is pinned, unless
      ``dont_load_ca`` leaves the choice to requests (which honours
      ``REQUESTS_CA_BUNDLE`` / ``CURL_CA_BUNDLE``).
    """
    if accept_unauthorized:
        return False
    if dont_load_ca:
        return True
    return certifi.where()


class RequestsTransport:
    """:class:`Transport` backed by a :class:`requests.Session`.

    Parameters:
        verify: Passed straight to requests (see :func:`resolve_verify`).
        session: Optional pre-built session (shared pools, proxies, ...).
    """

    def __init__(
        self,
        *,
        verify: bool | str = True,
        session: requests.Session | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._session.verify = verify
        if verify is False:
            logger.warning("TLS certificate verification is disabled")

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: str | None,
    ) -> TransportResponse:
        data = body.encode("utf-8") if body is not None else None
        response = self._session.request(method, url, headers=headers, data=data)
        return TransportResponse(status=response.status_code, text=response.text)

    def close(self) -> None:
        self._session.close()
