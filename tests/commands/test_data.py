"""Tests for the data command group."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from plugrest.cli import cli
from plugrest.client.rest import BASE_URL
from plugrest.commands.data import parse_value

OID = "5f1d7c2e9b1e8a0012345678"


class TestParseValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("21.5", 21.5), ("42", 42), ("true", True), ('{"on": 1}', {"on": 1}), ("null", None)],
    )
    def test_json(self, raw: str, expected: object) -> None:
        assert parse_value(raw) == expected

    def test_plain_text(self) -> None:
        assert parse_value("hello world") == "hello world"


@pytest.mark.usefixtures("_cli_env")
class TestPublish:
    def test_publish(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(200, [OID])
        result = cli_runner.invoke(cli, ["--json", "data", "publish", "home/temp", "21.5"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["op"] == "publish_data"
        assert data["data"]["result"] == [OID]
        sent = transport.last
        assert (sent.method, sent.url) == ("PUT", BASE_URL + "data")
        assert sent.json == {"channel": "home/temp", "data": 21.5}
        assert sent.headers["X-Plug-Id"] == "dev-0123456789abcdef"

    def test_publish_options(self, cli_runner: CliRunner, transport) -> None:
        result = cli_runner.invoke(
            cli,
            ["data", "publish", "log", "booted", "--at", "2017-07-14T02:40:00Z", "--ttl", "60"],
        )
        assert result.exit_code == 0, result.output
        assert transport.last.json == {
            "channel": "log",
            "data": "booted",
            "at": 1500000000000,
            "ttl": 60,
        }

    def test_publish_human_output(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(200, [OID])
        result = cli_runner.invoke(cli, ["data", "publish", "t", "1"])
        assert result.exit_code == 0
        assert "OK" in result.stdout
        assert f"id: {OID}" in result.stdout

    def test_publish_invalid_channel(self, cli_runner: CliRunner, transport) -> None:
        result = cli_runner.invoke(cli, ["--json", "data", "publish", "home/+", "1"])
        assert result.exit_code == 1
        assert result.stdout == ""
        assert "INVALID_PARAMETER" in result.output
        assert transport.sent == []


@pytest.mark.usefixtures("_cli_env")
class TestGet:
    def test_get_with_filters(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(200, [{"id": OID, "channel": "home/temp", "data": 20, "at": 0}])
        result = cli_runner.invoke(
            cli,
            ["data", "get", "home/+", "--of", "dev-a", "--of", "dev-b", "--limit", "5"],
        )
        assert result.exit_code == 0, result.output
        assert transport.last.url == BASE_URL + "data/home/+?of=dev-a%2Cdev-b&limit=5"
        assert "home/temp" in result.stdout
        assert "1 entries" in result.stdout

    def test_get_quiet(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(200, [{"id": OID, "channel": "t", "data": 1}])
        result = cli_runner.invoke(cli, ["-q", "data", "get", "#"])
        assert result.exit_code == 0
        assert result.stdout.strip() == OID

    def test_get_http_error(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(401, {"message": "unauthorized"})
        result = cli_runner.invoke(cli, ["data", "get", "#"])
        assert result.exit_code == 1
        assert "HTTP status 401" in result.output


@pytest.mark.usefixtures("_cli_env")
class TestRemove:
    def test_rm_by_id(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(200, 1)
        result = cli_runner.invoke(cli, ["--json", "data", "rm", "--id", OID])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["data"]["result"] == 1
        assert (transport.last.method, transport.last.url) == ("DELETE", BASE_URL + "data/%23")
        assert transport.last.json == {"id": [OID]}

    def test_rm_without_mask_warns(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(200, 1)
        result = cli_runner.invoke(cli, ["data", "rm", "--id", OID])
        assert result.exit_code == 0, result.output
        assert "WARNING: no channel mask given" in result.stderr

    def test_rm_with_mask_and_before(self, cli_runner: CliRunner, transport) -> None:
        result = cli_runner.invoke(
            cli, ["data", "rm", "home/temp", "--before", "2017-07-14T02:40:00Z"]
        )
        assert result.exit_code == 0, result.output
        assert transport.last.url == BASE_URL + "data/home/temp"
        assert transport.last.json == {"before": 1500000000000}

    def test_rm_requires_selector(self, cli_runner: CliRunner, transport) -> None:
        result = cli_runner.invoke(cli, ["data", "rm"])
        assert result.exit_code == 1
        assert "at least one of" in result.output
        assert transport.sent == []


@pytest.mark.usefixtures("_cli_env")
class TestChannels:
    def test_channels(self, cli_runner: CliRunner, transport) -> None:
        transport.reply(200, ["home/temp", "home/door"])
        result = cli_runner.invoke(cli, ["data", "channels", "home/#"])
        assert result.exit_code == 0, result.output
        assert transport.last.url == BASE_URL + "channel/home/%23"
        assert "home/door" in result.stdout
