"""Tests for RestClient operations and the request dispatcher."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

import pytest
import requests
import structlog

from plugrest import BASE_URL, RestClient
from plugrest.client.request import Reply, RequestDescriptor
from plugrest.domain.types import HttpMethod
from plugrest.errors import (
    AlreadyEnrolled,
    HttpStatus,
    InvalidParameter,
    MissingCredentials,
    TransportFailure,
)
from plugrest.validation import Rule

DEVICE_ID = "dev-0123456789abcdef"
OID_A = "5f1d7c2e9b1e8a0012345678"
OID_B = "5f1d7c2e9b1e8a0087654321"


class Recorder:
    """Continuation that records its ``(error, body)`` calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, Any]] = []

    def __call__(self, error: Any, body: Any) -> None:
        self.calls.append((error, body))

    @property
    def only(self) -> tuple[Any, Any]:
        assert len(self.calls) == 1
        return self.calls[0]


class TestConstruction:
    def test_default_base_url(self, transport) -> None:
        with RestClient(transport=transport, sync=True) as c:
            assert c.base_url == BASE_URL
            assert c.get_auth() is None

    def test_trailing_slash_enforced(self, transport) -> None:
        with RestClient({"url": "http://localhost:8080/iot"}, transport=transport, sync=True) as c:
            assert c.base_url == "http://localhost:8080/iot/"

    def test_invalid_url(self, transport) -> None:
        with pytest.raises(InvalidParameter) as exc:
            RestClient({"url": "ftp://nope"}, transport=transport, sync=True)
        assert exc.value.field == "url"

    def test_invalid_credentials(self, transport) -> None:
        with pytest.raises(InvalidParameter):
            RestClient({"id": "mod-abc", "password": "x"}, transport=transport, sync=True)

    def test_initial_credentials(self, client: RestClient) -> None:
        assert client.get_auth() == {
            "id": DEVICE_ID,
            "password": "device-secret",
            "is_master": False,
        }

    def test_close_closes_transport(self, transport) -> None:
        RestClient(transport=transport, sync=True).close()
        assert transport.closed

    def test_does_not_mutate_options(self, transport) -> None:
        options = {"id": DEVICE_ID, "password": "pw", "max_workers": "2"}
        RestClient(options, transport=transport).close()
        assert options["max_workers"] == "2"


class TestAuth:
    def test_set_auth_replaces(self, client: RestClient) -> None:
        client.set_auth({"id": "owner@example.com", "password": "acct", "is_master": True})
        assert client.get_auth() == {
            "id": "owner@example.com",
            "password": "acct",
            "is_master": True,
        }

    def test_set_auth_requires_id(self, client: RestClient) -> None:
        with pytest.raises(InvalidParameter) as exc:
            client.set_auth({"password": "x"})
        assert exc.value.rule is Rule.MANDATORY

    def test_set_auth_rejects_empty_password(self, client: RestClient) -> None:
        with pytest.raises(InvalidParameter, match="invalid password"):
            client.set_auth({"id": DEVICE_ID, "password": ""})

    def test_set_auth_without_password(self, client: RestClient) -> None:
        client.set_auth({"id": "dev-other"})
        assert client.get_auth() == {"id": "dev-other", "password": None, "is_master": False}

    def test_numeric_password_accepted(self, transport) -> None:
        c = RestClient({"id": DEVICE_ID, "password": 1234}, transport=transport, sync=True)
        assert c.get_auth() == {"id": DEVICE_ID, "password": "1234", "is_master": False}
        c.get_device()
        assert transport.last.headers["X-Plug-Auth"] == "1234"


class TestDispatcher:
    def test_continuation_and_future(self, client: RestClient, transport) -> None:
        transport.reply(200, {"id": DEVICE_ID})
        rec = Recorder()
        future = client.get_device({}, rec)
        assert isinstance(future, Future)
        assert future.result() == Reply(status=200, error=None, body={"id": DEVICE_ID})
        assert rec.only == (None, {"id": DEVICE_ID})

    def test_continuation_from_params(self, client: RestClient) -> None:
        rec = Recorder()
        client.get_device({"cb": rec})
        assert rec.only == (None, None)

    def test_positional_continuation_wins(self, client: RestClient) -> None:
        embedded, positional = Recorder(), Recorder()
        client.get_device({"cb": embedded}, positional)
        assert embedded.calls == []
        assert len(positional.calls) == 1

    def test_non_callable_continuation_ignored(self, client: RestClient, transport) -> None:
        future = client.get_device({"cb": "not callable"})
        assert future.result().ok
        assert len(transport.sent) == 1

    def test_reserved_key_not_serialized(self, client: RestClient, transport) -> None:
        client.set_device({"name": "kitchen", "cb": Recorder()})
        assert transport.last.json == {"name": "kitchen"}

    def test_http_404(self, client: RestClient, transport) -> None:
        transport.reply(404, {"message": "no such device"})
        rec = Recorder()
        reply = client.get_device({"of": "dev-missing"}, rec).result()
        error, body = rec.only
        assert error == HttpStatus(404)
        assert error.status == 404
        assert body == {"message": "no such device"}
        assert reply.status == 404

    def test_raw_text_body(self, client: RestClient, transport) -> None:
        transport.reply(500, text="Internal Server Error")
        rec = Recorder()
        client.get_device({}, rec)
        assert rec.only == (HttpStatus(500), "Internal Server Error")

    def test_transport_failure(self, client: RestClient, transport) -> None:
        cause = requests.ConnectionError("connection refused")
        transport.fail(cause)
        rec = Recorder()
        reply = client.get_device({}, rec).result()
        error, body = rec.only
        assert isinstance(error, TransportFailure)
        assert error.__cause__ is cause
        assert body is None
        assert reply.status is None

    def test_exactly_one_transport_call(self, client: RestClient, transport) -> None:
        transport.reply(503, text="busy")
        client.get_device({})
        assert len(transport.sent) == 1

    def test_continuation_exception_resolves_future(self, client: RestClient) -> None:
        def boom(error: Any, body: Any) -> None:
            raise RuntimeError("continuation failed")

        future = client.get_device({}, boom)
        with pytest.raises(RuntimeError, match="continuation failed"):
            future.result()

    def test_missing_credentials(self, anon_client: RestClient, transport) -> None:
        with pytest.raises(MissingCredentials):
            anon_client.request(RequestDescriptor(HttpMethod.GET, "device/dev-a"))
        assert transport.sent == []

    def test_master_only_with_device_credentials(self, client: RestClient, transport) -> None:
        with pytest.raises(MissingCredentials):
            client.enroll_prototype({"name": "proto"})
        assert transport.sent == []

    def test_url_composition(self, client: RestClient, transport) -> None:
        client.request(RequestDescriptor(HttpMethod.GET, "device/dev-a"))
        assert transport.last.url == BASE_URL + "device/dev-a"

    def test_client_post_only(self, transport) -> None:
        with RestClient(
            {"id": DEVICE_ID, "password": "pw", "post_only": True}, transport=transport, sync=True
        ) as c:
            c.remove_data({"id": OID_A})
        assert transport.last.method == "POST"
        assert transport.last.headers["X-HTTP-Method-Override"] == "DELETE"

    def test_descriptor_post_only(self, client: RestClient, transport) -> None:
        client.request(RequestDescriptor(HttpMethod.PATCH, "device/dev-a", post_only=True))
        assert transport.last.method == "POST"
        assert transport.last.headers["X-HTTP-Method-Override"] == "PATCH"

    def test_executor_runs_off_caller_thread(self, transport) -> None:
        seen: list[str] = []
        with RestClient({"id": DEVICE_ID, "password": "pw"}, transport=transport) as c:
            future = c.get_device({}, lambda e, b: seen.append(threading.current_thread().name))
            assert future.result(timeout=5).ok
        assert seen and seen[0].startswith("plugrest")

    def test_external_executor_not_shut_down(self, transport) -> None:
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            c = RestClient(
                {"id": DEVICE_ID, "password": "pw"}, transport=transport, executor=executor
            )
            assert c.get_device({}).result(timeout=5).ok
            c.close()
            assert executor.submit(lambda: 1).result(timeout=5) == 1
        finally:
            executor.shutdown()


class TestEnrollment:
    def test_enroll_prototype(self, master_client: RestClient, transport) -> None:
        transport.reply(200, "dev-newproto")
        rec = Recorder()
        master_client.enroll_prototype({"name": "proto", "hwid": 1234, "pass": "pw"}, rec)
        sent = transport.last
        assert (sent.method, sent.url) == ("POST", BASE_URL + "device")
        assert sent.json == {"name": "proto", "hwid": "1234", "pass": "pw"}
        assert sent.headers["X-Plug-Master"] == "account-secret"
        assert sent.headers["X-Plug-Email"] == "owner@example.com"
        assert rec.only == (None, "dev-newproto")

    def test_enroll_prototype_requires_name(self, master_client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter):
            master_client.enroll_prototype({})
        assert transport.sent == []

    def test_enroll_product_adopts_identity(self, anon_client: RestClient, transport) -> None:
        transport.reply(200, {"id": "dev-fresh", "auth": "fresh-secret"})
        rec = Recorder()
        anon_client.enroll_product({"model": "mod-abc", "hwid": "SN1", "pass": "act"}, rec)
        sent = transport.last
        assert (sent.method, sent.url) == ("POST", BASE_URL + "device")
        assert sent.json == {"model": "mod-abc", "hwid": "SN1", "pass": "act"}
        assert "X-Plug-Id" not in sent.headers
        assert anon_client.get_auth() == {
            "id": "dev-fresh",
            "password": "fresh-secret",
            "is_master": False,
        }
        assert rec.only == (None, {"id": "dev-fresh", "auth": "fresh-secret"})

    def test_enroll_product_numeric_auth(self, anon_client: RestClient, transport) -> None:
        transport.reply(200, {"id": "dev-fresh", "auth": 987654})
        rec = Recorder()
        reply = anon_client.enroll_product(
            {"model": "mod-abc", "hwid": "SN1", "pass": "act"}, rec
        ).result()
        assert reply.error is None
        assert rec.only == (None, {"id": "dev-fresh", "auth": 987654})
        assert anon_client.get_auth()["password"] == "987654"

    def test_enroll_product_failure_keeps_credentials(
        self, anon_client: RestClient, transport
    ) -> None:
        transport.reply(403, {"message": "bad activation"})
        anon_client.enroll_product({"model": "mod-abc", "hwid": "SN1", "pass": "wrong"})
        assert anon_client.get_auth() is None

    @pytest.mark.parametrize(
        "params",
        [
            {"hwid": "SN1", "pass": "x"},
            {"model": "dev-abc", "hwid": "SN1", "pass": "x"},
            {"model": "mod-abc", "pass": "x"},
        ],
    )
    def test_enroll_product_validation(self, anon_client: RestClient, transport, params) -> None:
        with pytest.raises(InvalidParameter):
            anon_client.enroll_product(params)
        assert transport.sent == []

    def test_control_device(self, anon_client: RestClient, transport) -> None:
        transport.reply(200, {"id": "dev-ctrl", "auth": "ctrl-secret"})
        anon_client.control_device({"model": "mod-abc", "ctrl": "SN9", "pass": "act", "name": "rc"})
        sent = transport.last
        assert (sent.method, sent.url) == ("PUT", BASE_URL + "device")
        assert sent.json == {"model": "mod-abc", "ctrl": "SN9", "pass": "act", "name": "rc"}
        assert anon_client.get_auth()["id"] == "dev-ctrl"

    def test_enroll_controller(self, anon_client: RestClient, transport) -> None:
        transport.reply(200, {"id": "dev-ctrl", "auth": "s"})
        anon_client.enroll_controller({"model": "mod-abc", "ctrl": "SN9", "pass": "act"})
        assert transport.last.method == "PUT"
        assert anon_client.get_auth()["id"] == "dev-ctrl"

    def test_enroll_controller_when_enrolled(self, client: RestClient, transport) -> None:
        with pytest.raises(AlreadyEnrolled):
            client.enroll_controller({"model": "mod-abc", "ctrl": "SN9", "pass": "act"})
        assert transport.sent == []

    def test_uncontrol_own_device(self, client: RestClient, transport) -> None:
        client.uncontrol_device({"controlled": ["dev-a", "dev-b"]})
        sent = transport.last
        assert (sent.method, sent.url) == ("DELETE", BASE_URL + f"device/{DEVICE_ID}")
        assert sent.json == {"controlled": ["dev-a", "dev-b"]}

    def test_uncontrol_of_requires_master(self, client: RestClient, transport) -> None:
        with pytest.raises(MissingCredentials):
            client.uncontrol_device({"of": "dev-ctrl", "controlled": "dev-a"})
        assert transport.sent == []

    def test_uncontrol_of_with_master(self, master_client: RestClient, transport) -> None:
        master_client.uncontrol_device({"of": "dev-ctrl", "controlled": "dev-a"})
        assert transport.last.url == BASE_URL + "device/dev-ctrl"
        assert transport.last.json == {"controlled": "dev-a"}

    def test_unenroll_self(self, client: RestClient, transport) -> None:
        transport.reply(200, 1)
        rec = Recorder()
        client.unenroll(None, rec)
        sent = transport.last
        assert (sent.method, sent.url) == ("DELETE", BASE_URL + "device")
        assert sent.json == DEVICE_ID
        assert rec.only == (None, 1)

    def test_unenroll_others(self, master_client: RestClient, transport) -> None:
        master_client.unenroll({"of": ["dev-a", "dev-b"]})
        assert transport.last.json == ["dev-a", "dev-b"]
        assert "X-Plug-Master" in transport.last.headers

    def test_unenroll_without_id(self, master_client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter) as exc:
            master_client.unenroll()
        assert exc.value.field == "of"
        assert transport.sent == []


class TestDevice:
    def test_get_device_self(self, client: RestClient, transport) -> None:
        client.get_device()
        sent = transport.last
        assert (sent.method, sent.url, sent.body) == ("GET", BASE_URL + f"device/{DEVICE_ID}", None)
        assert sent.headers["X-Plug-Id"] == DEVICE_ID
        assert sent.headers["X-Plug-Auth"] == "device-secret"

    def test_get_device_of(self, client: RestClient, transport) -> None:
        client.get_device({"of": "com-peer"})
        assert transport.last.url == BASE_URL + "device/com-peer"

    def test_get_device_rejects_model_id(self, client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter):
            client.get_device({"of": "mod-x"})
        assert transport.sent == []

    def test_set_device(self, client: RestClient, transport) -> None:
        client.set_device({"of": "dev-x", "name": "Kitchen", "status": "ok", "perm": {"r": 1}})
        sent = transport.last
        assert (sent.method, sent.url) == ("PATCH", BASE_URL + "device/dev-x")
        assert sent.json == {"name": "Kitchen", "status": "ok", "perm": {"r": 1}}

    def test_set_device_prop(self, client: RestClient, transport) -> None:
        client.set_device_prop({"key": "fw version", "value": {"major": 1}})
        sent = transport.last
        assert (sent.method, sent.url) == ("PATCH", BASE_URL + f"device/{DEVICE_ID}/fw%20version")
        assert sent.json == {"major": 1}

    def test_set_device_prop_requires_value(self, client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter) as exc:
            client.set_device_prop({"key": "k"})
        assert exc.value.field == "value"
        assert transport.sent == []

    def test_remove_device_prop(self, client: RestClient, transport) -> None:
        client.remove_device_prop({"key": "limits", "of": "dev-x"})
        sent = transport.last
        assert sent.method == "PATCH"
        assert sent.url == BASE_URL + "device/dev-x/limits"
        assert sent.body == "null"

    def test_get_device_prop(self, client: RestClient, transport) -> None:
        transport.reply(200, "1.2.0")
        rec = Recorder()
        client.get_device_prop({"key": "firmware"}, rec)
        assert transport.last.url == BASE_URL + f"device/{DEVICE_ID}/firmware"
        assert transport.last.method == "GET"
        assert rec.only == (None, "1.2.0")

    def test_prop_requires_device(self, anon_client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter) as exc:
            anon_client.get_device_prop({"key": "k"})
        assert (exc.value.field, exc.value.rule) == ("of", Rule.MANDATORY)
        assert transport.sent == []

    def test_set_device_location(self, client: RestClient, transport) -> None:
        client.set_device_location(
            {"x": "12.5", "y": 41.9, "r": 10, "t": "2017-07-14T02:40:00Z", "extra": "dropped"}
        )
        sent = transport.last
        assert (sent.method, sent.url) == ("PATCH", BASE_URL + f"device/{DEVICE_ID}/location")
        assert sent.json == {"x": 12.5, "y": 41.9, "r": 10, "t": 1500000000000}

    def test_set_device_location_requires_coordinates(
        self, client: RestClient, transport
    ) -> None:
        with pytest.raises(InvalidParameter) as exc:
            client.set_device_location({"x": 1})
        assert exc.value.field == "y"
        assert transport.sent == []

    def test_get_device_location(self, client: RestClient, transport) -> None:
        client.get_device_location({"of": "dev-x"})
        assert (transport.last.method, transport.last.url) == (
            "GET",
            BASE_URL + "device/dev-x/location",
        )

    def test_location_continuation(self, client: RestClient, transport) -> None:
        transport.reply(200, {"x": 1, "y": 2})
        rec = Recorder()
        client.get_device_location({"cb": rec})
        assert rec.only == (None, {"x": 1, "y": 2})


class TestData:
    def test_publish_single_entry_unwrapped(self, client: RestClient, transport) -> None:
        transport.reply(200, [OID_A])
        rec = Recorder()
        client.publish_data({"entries": [{"channel": "temperature", "data": 42}]}, rec)
        sent = transport.last
        assert (sent.method, sent.url) == ("PUT", BASE_URL + "data")
        assert sent.json == {"channel": "temperature", "data": 42}
        assert rec.only == (None, [OID_A])

    def test_publish_many(self, client: RestClient, transport) -> None:
        entries = [
            {"channel": "a", "data": 1, "at": "2017-07-14T02:40:00Z"},
            {"channel": "b/c", "data": None, "ttl": "60"},
        ]
        client.publish_data({"entries": entries})
        assert transport.last.json == [
            {"channel": "a", "data": 1, "at": 1500000000000},
            {"channel": "b/c", "data": None, "ttl": 60},
        ]
        assert entries[0]["at"] == "2017-07-14T02:40:00Z"

    def test_publish_mapping_entry(self, client: RestClient, transport) -> None:
        client.publish_data({"entries": {"channel": "t", "data": "x"}})
        assert transport.last.json == {"channel": "t", "data": "x"}

    @pytest.mark.parametrize(
        "entry",
        [{"channel": "temperature"}, {"data": 1}, {"channel": "home/+", "data": 1}, "text"],
    )
    def test_publish_validation(self, client: RestClient, transport, entry) -> None:
        with pytest.raises(InvalidParameter):
            client.publish_data({"entries": [entry]})
        assert transport.sent == []

    def test_publish_requires_entries(self, client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter):
            client.publish_data({})
        assert transport.sent == []

    def test_retrieve_data(self, client: RestClient, transport) -> None:
        client.retrieve_data(
            {
                "channel_mask": "home/+/temp",
                "of": ["dev-a", "dev-b"],
                "before": OID_A,
                "after": "2017-07-14T02:40:00Z",
                "limit": "10",
                "offset": 0,
            }
        )
        sent = transport.last
        assert sent.method == "GET"
        assert sent.url == (
            BASE_URL + f"data/home/+/temp?before={OID_A}&after=1500000000000"
            "&of=dev-a%2Cdev-b&limit=10"
        )
        assert sent.body is None

    def test_retrieve_data_escapes_mask(self, client: RestClient, transport) -> None:
        client.retrieve_data({"channel_mask": "rooms/living room/#"})
        assert transport.last.url == BASE_URL + "data/rooms/living%20room/%23"

    def test_retrieve_requires_mask(self, client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter):
            client.retrieve_data({"limit": 1})
        assert transport.sent == []

    def test_retrieve_integral_limit_sent_as_int(self, client: RestClient, transport) -> None:
        client.retrieve_data({"channel_mask": "a", "limit": "10.0"})
        assert transport.last.url == BASE_URL + "data/a?limit=10"

    def test_retrieve_rejects_python_only_literal(self, client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter) as exc:
            client.retrieve_data({"channel_mask": "a", "limit": "1_000"})
        assert exc.value.rule is Rule.NUMBER
        assert transport.sent == []

    def test_retrieve_rejects_negative_limit(self, client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter) as exc:
            client.retrieve_data({"channel_mask": "#", "limit": -1})
        assert exc.value.rule is Rule.POSITIVE

    def test_remove_data(self, client: RestClient, transport) -> None:
        transport.reply(200, 2)
        rec = Recorder()
        client.remove_data({"channel_mask": "home/temp", "id": [OID_A, OID_B]}, rec)
        sent = transport.last
        assert (sent.method, sent.url) == ("DELETE", BASE_URL + "data/home/temp")
        assert sent.json == {"id": [OID_A, OID_B]}
        assert rec.only == (None, 2)

    def test_remove_data_default_mask(self, client: RestClient, transport) -> None:
        client.remove_data({"at": ["2017-07-14T02:40:00Z", 1500000060000]})
        assert transport.last.url == BASE_URL + "data/%23"
        assert transport.last.json == {"at": "1500000000000,1500000060000"}

    def test_remove_data_requires_selector(self, client: RestClient, transport) -> None:
        with pytest.raises(InvalidParameter) as exc:
            client.remove_data({})
        assert exc.value.rule is Rule.SOME
        assert "at least one of" in str(exc.value)
        assert transport.sent == []

    def test_get_channels(self, client: RestClient, transport) -> None:
        transport.reply(200, ["home/temp", "home/door"])
        rec = Recorder()
        client.get_channels({"channel_mask": "home/#", "of": "dev-a"}, rec)
        assert transport.last.url == BASE_URL + "channel/home/%23?of=dev-a"
        assert rec.only == (None, ["home/temp", "home/door"])

    def test_params_not_mutated(self, client: RestClient) -> None:
        params = {"channel_mask": "#", "limit": "5", "after": "2017-07-14T02:40:00Z"}
        client.retrieve_data(params)
        assert params == {"channel_mask": "#", "limit": "5", "after": "2017-07-14T02:40:00Z"}


class TestDebugLogging:
    def test_debug_traces_requests(self, transport) -> None:
        with structlog.testing.capture_logs() as logs:
            with RestClient(
                {"id": DEVICE_ID, "password": "pw", "debug": True}, transport=transport, sync=True
            ) as c:
                c.get_device()
        events = [entry["event"] for entry in logs]
        assert "client.auth" in events
        assert "client.request" in events
        assert "client.response" in events

    def test_location_operations_traced(self, transport) -> None:
        with structlog.testing.capture_logs() as logs:
            with RestClient(
                {"id": DEVICE_ID, "password": "pw", "debug": True}, transport=transport, sync=True
            ) as c:
                c.set_device_location({"x": 12.5, "y": 41.9})
                c.get_device_location()
        by_event = {entry["event"]: entry for entry in logs}
        assert by_event["client.set_device_location"]["of"] == DEVICE_ID
        assert by_event["client.set_device_location"]["x"] == 12.5
        assert by_event["client.get_device_location"]["of"] == DEVICE_ID

    def test_quiet_without_debug(self, client: RestClient) -> None:
        with structlog.testing.capture_logs() as logs:
            client.get_device()
        assert logs == []

    def test_transport_failure_always_logged(self, client: RestClient, transport) -> None:
        transport.fail(OSError("unreachable"))
        with structlog.testing.capture_logs() as logs:
            client.get_device()
        assert [entry["event"] for entry in logs] == ["client.transport_failure"]
        assert logs[0]["log_level"] == "warning"
