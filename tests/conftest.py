"""Shared pytest fixtures for plugrest tests."""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from plugrest.client.rest import RestClient
from plugrest.client.transport import TransportResponse

DEVICE_ID = "dev-0123456789abcdef"
DEVICE_AUTH = "device-secret"
MASTER_EMAIL = "owner@example.com"
MASTER_PASSWORD = "account-secret"


@dataclass(frozen=True)
class SentRequest:
    """One request captured by :class:`FakeTransport`."""

    method: str
    url: str
    headers: dict[str, str]
    body: str | None

    @property
    def json(self) -> Any:
        return None if self.body is None else json.loads(self.body)


class FakeTransport:
    """Transport that records requests and replays scripted responses.

    Unscripted requests get ``200`` with a JSON ``null`` body.
    """

    def __init__(self) -> None:
        self.sent: list[SentRequest] = []
        self.closed = False
        self._script: deque[TransportResponse | Exception] = deque()

    def reply(self, status: int = 200, body: Any = None, *, text: str | None = None) -> None:
        payload = text if text is not None else json.dumps(body)
        self._script.append(TransportResponse(status=status, text=payload))

    def fail(self, exc: Exception) -> None:
        self._script.append(exc)

    @property
    def last(self) -> SentRequest:
        assert self.sent, "no request was sent"
        return self.sent[-1]

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: str | None,
    ) -> TransportResponse:
        self.sent.append(SentRequest(method, url, dict(headers), body))
        outcome = self._script.popleft() if self._script else TransportResponse(200, "null")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(transport: FakeTransport) -> Iterator[RestClient]:
    """Device-authenticated client running requests inline."""
    c = RestClient({"id": DEVICE_ID, "password": DEVICE_AUTH}, transport=transport, sync=True)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def master_client(transport: FakeTransport) -> Iterator[RestClient]:
    """Account (master) authenticated client running requests inline."""
    c = RestClient(
        {"id": MASTER_EMAIL, "password": MASTER_PASSWORD, "is_master": True},
        transport=transport,
        sync=True,
    )
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def anon_client(transport: FakeTransport) -> Iterator[RestClient]:
    """Client without credentials running requests inline."""
    c = RestClient(transport=transport, sync=True)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def _cli_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, transport: FakeTransport
) -> None:
    """Isolate the CLI: device credentials from env, no config file, fake transport.

    Use via ``@pytest.mark.usefixtures("_cli_env")`` on command test classes.
    """
    monkeypatch.setenv("PLUGREST_CONFIG", str(tmp_path / "absent.toml"))
    monkeypatch.setenv("PLUGREST_AUTH__ID", DEVICE_ID)
    monkeypatch.setenv("PLUGREST_AUTH__PASSWORD", DEVICE_AUTH)
    monkeypatch.setattr("plugrest.client.rest.RequestsTransport", lambda **_kw: transport)
