"""RestClient: one method per CloudPlugs capability.

Every operation follows the same contract:

1. Accept a single parameter mapping and an optional continuation
   ``cb(error, body)``.  The continuation may also travel inside the
   mapping under the reserved ``"cb"`` key; the positional one wins.
2. Validate a copy of the mapping against the operation's rule set.
3. Build a :class:`RequestDescriptor` and hand it to :meth:`request`.

Validation and credential faults raise immediately, before any I/O.
Network outcomes are delivered to the continuation and resolve the
returned :class:`~concurrent.futures.Future` with a :class:`Reply`.

INVARIANT: One transport call per dispatched request, no retries.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

import structlog

from plugrest.client.credentials import Credentials, CredentialStore
from plugrest.client.request import (
    Reply,
    RequestDescriptor,
    build_filters,
    build_headers,
    decode_response,
    encode_body,
    ensure_authorized,
    escape_channel,
    quote_component,
)
from plugrest.client.transport import RequestsTransport, Transport, resolve_verify
from plugrest.domain.types import HttpMethod
from plugrest.errors import AlreadyEnrolled, InvalidParameter, TransportFailure
from plugrest.validation import Rule, RuleSet, check_params

BASE_URL = "https://api.cloudplugs.com/iot/"
CB_KEY = "cb"

Continuation = Callable[[Any, Any], Any]
Params = Mapping[str, Any]

log = structlog.get_logger(__name__)

_CLIENT_RULES: RuleSet = {
    "url": Rule.URL,
    ("debug", "accept_unauthorized", "dont_load_ca", "post_only"): Rule.BOOLEAN,
    "max_workers": (Rule.NUMBER, Rule.POSITIVE),
}

_AUTH_RULES: RuleSet = {
    "id": (Rule.MANDATORY, Rule.PLUGIDPUB_OR_EMAIL),
    "password": Rule.PASSWORD,
}

_ENROLL_RULES: RuleSet = {
    "model": (Rule.MANDATORY, Rule.PLUGIDMOD),
    ("hwid", "pass"): (Rule.MANDATORY, Rule.STRING),
}

_CONTROL_RULES: RuleSet = {
    "model": (Rule.MANDATORY, Rule.PLUGIDMOD),
    ("ctrl", "pass"): (Rule.MANDATORY, Rule.STRING),
}

_PROP_RULES: RuleSet = {
    "key": (Rule.MANDATORY, Rule.STRING),
    "of": Rule.PLUGIDPUB,
}

_LOCATION_RULES: RuleSet = {
    "of": Rule.PLUGIDPUB,
    ("x", "y"): (Rule.MANDATORY, Rule.NUMBER),
    ("r", "z"): Rule.NUMBER,
    "t": Rule.TIMESTAMP,
}

_ENTRY_RULES: RuleSet = {
    "data": Rule.MANDATORY,
    "channel": (Rule.MANDATORY, Rule.CHANNEL),
    ("at", "expire_at"): Rule.TIMESTAMP,
    "ttl": Rule.NUMBER,
    "id": Rule.STRING,
}

_QUERY_RULES: RuleSet = {
    "channel_mask": (Rule.MANDATORY, Rule.CHANNEL_MASK),
    "of": Rule.CSV_PLUGIDPUB,
    ("before", "after"): Rule.TIMESTAMP_OR_OID,
    "at": Rule.CSV_TIMESTAMP,
    ("offset", "limit"): (Rule.NUMBER, Rule.POSITIVE),
}

_REMOVE_RULES: RuleSet = {
    "channel_mask": Rule.CHANNEL_MASK,
    "of": Rule.CSV_PLUGIDPUB,
    ("before", "after"): Rule.TIMESTAMP_OR_OID,
    "at": Rule.CSV_TIMESTAMP,
    "id": Rule.OID_OR_LIST,
    ("id", "before", "after", "at"): Rule.SOME,
}


def _without(params: Params, *keys: str) -> dict[str, Any]:
    """Copy of *params* minus *keys* and the reserved continuation key."""
    drop = {CB_KEY, *keys}
    return {k: v for k, v in params.items() if k not in drop}


def _pick(params: Params, *keys: str) -> dict[str, Any]:
    return {k: params[k] for k in keys if k in params}


class RestClient:
    """Client for the CloudPlugs REST API.

    Parameters:
        params: Construction options: ``id``, ``password``, ``is_master``
            (forwarded to :meth:`set_auth` when ``id`` is present),
            ``debug``, ``url``, ``accept_unauthorized``, ``dont_load_ca``,
            ``post_only`` and ``max_workers``.
        transport: Transport to use instead of a :class:`RequestsTransport`.
        executor: Executor running the exchanges (default: a private
            ``ThreadPoolExecutor`` with ``max_workers`` threads).
        sync: Run exchanges inline; returned futures are already resolved.

    Attributes:
        post_only: Send every non-POST request as POST with an
            ``X-HTTP-Method-Override`` header.

    Usage::

        with RestClient({"id": "dev-123", "password": "secret"}) as client:
            client.publish_data(
                {"entries": [{"channel": "temperature", "data": 21}]},
                lambda err, ids: print(err or ids),
            )
    """

    def __init__(
        self,
        params: Params | None = None,
        *,
        transport: Transport | None = None,
        executor: ThreadPoolExecutor | None = None,
        sync: bool = False,
    ) -> None:
        options = dict(params or {})
        check_params(options, _CLIENT_RULES)

        self._credentials = CredentialStore()
        self._debug = options.get("debug", False)
        self.post_only = options.get("post_only", False)

        url = options.get("url") or BASE_URL
        self._base_url = url if url.endswith("/") else url + "/"

        self._transport = transport or RequestsTransport(
            verify=resolve_verify(
                accept_unauthorized=options.get("accept_unauthorized", False),
                dont_load_ca=options.get("dont_load_ca", False),
            )
        )
        self._owns_executor = executor is None and not sync
        self._executor = None if sync else executor
        if self._owns_executor:
            self._executor = ThreadPoolExecutor(
                max_workers=int(options.get("max_workers") or 1),
                thread_name_prefix="plugrest",
            )

        self._log("client.init", url=self._base_url)
        if options.get("id"):
            self.set_auth(options)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        """Wait for in-flight exchanges, then release executor and transport."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
        self._transport.close()

    def __enter__(self) -> RestClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def set_auth(self, params: Params) -> None:
        """Replace the credentials.

        ``id`` is a public plug-id (device authentication) or an account
        email; ``password`` is the matching secret; ``is_master`` marks it
        as the account (master) password.  A plug-id together with the
        account password is "hybrid" authentication.
        """
        p = dict(params)
        check_params(p, _AUTH_RULES)
        self._log("client.auth", id=p["id"])
        credentials = Credentials.from_identity(
            p["id"], p.get("password"), is_master=bool(p.get("is_master"))
        )
        self._credentials.replace(credentials)

    def get_auth(self) -> dict[str, Any] | None:
        """The current ``{id, password, is_master}``, or None when unset."""
        return self._credentials.get().to_auth()

    # ------------------------------------------------------------------
    # Enrollment and control
    # ------------------------------------------------------------------

    def enroll_prototype(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Register a new prototype. Requires master (or hybrid) authentication.

        Params: ``name``; optional ``hwid``, ``pass``, ``perm``, ``props``.
        The reply body is the new prototype's plug-id.
        """
        p = dict(params)
        check_params(p, {"name": (Rule.MANDATORY, Rule.STRING), ("hwid", "pass"): Rule.STRING})
        self._log("client.enroll_prototype", name=p["name"])
        descriptor = RequestDescriptor.with_body(
            HttpMethod.POST, "device", _without(p), master=True
        )
        return self.request(descriptor, self._continuation(p, cb))

    def enroll_product(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Register a product from its ``model``, serial (``hwid``) and activation ``pass``.

        On success the client authenticates as the new device.
        """
        p = dict(params)
        check_params(p, _ENROLL_RULES)
        self._log("client.enroll_product", hwid=p["hwid"])
        descriptor = RequestDescriptor.with_body(HttpMethod.POST, "device", _without(p), auth=False)
        return self.request(descriptor, self._adopting(self._continuation(p, cb)))

    def enroll_controller(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Register this client as a new controller (see :meth:`control_device`)."""
        if self._credentials.get().plug_id:
            raise AlreadyEnrolled("already enrolled")
        return self.control_device(params, cb)

    def control_device(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Request control of another device.

        Params: ``model``, ``ctrl`` (serial of the controlled device),
        ``pass``; optional ``hwid`` and ``name`` for this controller.
        On success the client authenticates with the returned identity.
        """
        p = dict(params)
        check_params(p, _CONTROL_RULES)
        self._log("client.control_device", ctrl=p["ctrl"])
        descriptor = RequestDescriptor.with_body(HttpMethod.PUT, "device", _without(p), auth=False)
        return self.request(descriptor, self._adopting(self._continuation(p, cb)))

    def uncontrol_device(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Revoke control of one or more ``controlled`` devices."""
        p = dict(params)
        check_params(p, {"of": Rule.PLUGIDPUB, "controlled": Rule.PLUGIDPUB_OR_LIST})
        controller = self._device_id(p)
        self._log("client.uncontrol_device", controlled=p.get("controlled"))
        descriptor = RequestDescriptor.with_body(
            HttpMethod.DELETE, f"device/{controller}", _without(p, "of"), master="of" in p
        )
        return self.request(descriptor, self._continuation(p, cb))

    def unenroll(
        self, params: Params | None = None, cb: Continuation | None = None
    ) -> Future[Reply]:
        """Unregister this device, or the device(s) given as ``of``.

        The reply body is the number of devices unregistered.
        """
        p = dict(params or {})
        check_params(p, {"of": Rule.PLUGIDPUB_OR_LIST})
        target = p.get("of") or self._device_id(p)
        self._log("client.unenroll", of=target)
        descriptor = RequestDescriptor.with_body(
            HttpMethod.DELETE, "device", target, master="of" in p
        )
        return self.request(descriptor, self._continuation(p, cb))

    # ------------------------------------------------------------------
    # Device information and properties
    # ------------------------------------------------------------------

    def get_device(
        self, params: Params | None = None, cb: Continuation | None = None
    ) -> Future[Reply]:
        p = dict(params or {})
        check_params(p, {"of": Rule.PLUGIDPUB})
        device = self._device_id(p)
        self._log("client.get_device", of=device)
        descriptor = RequestDescriptor(HttpMethod.GET, f"device/{device}")
        return self.request(descriptor, self._continuation(p, cb))

    def set_device(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Update ``name``, ``perm``, ``status`` or ``props`` of a device."""
        p = dict(params)
        check_params(p, {"of": Rule.PLUGIDPUB, ("name", "status"): Rule.STRING})
        device = self._device_id(p)
        self._log("client.set_device", of=device)
        descriptor = RequestDescriptor.with_body(
            HttpMethod.PATCH, f"device/{device}", _without(p, "of")
        )
        return self.request(descriptor, self._continuation(p, cb))

    def set_device_prop(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Set custom property ``key`` to ``value`` (any JSON value)."""
        p = dict(params)
        check_params(p, {**_PROP_RULES, "value": Rule.MANDATORY})
        device = self._device_id(p)
        self._log("client.set_device_prop", of=device, key=p["key"], value=p["value"])
        descriptor = RequestDescriptor.with_body(
            HttpMethod.PATCH, self._prop_uri(device, p["key"]), p["value"]
        )
        return self.request(descriptor, self._continuation(p, cb))

    def remove_device_prop(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        p = dict(params)
        check_params(p, _PROP_RULES)
        self._log("client.remove_device_prop", key=p["key"])
        return self.set_device_prop({**p, "value": None}, cb)

    def get_device_prop(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        p = dict(params)
        check_params(p, _PROP_RULES)
        device = self._device_id(p)
        self._log("client.get_device_prop", of=device, key=p["key"])
        descriptor = RequestDescriptor(HttpMethod.GET, self._prop_uri(device, p["key"]))
        return self.request(descriptor, self._continuation(p, cb))

    def set_device_location(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Store the device location under the ``location`` property.

        ``x`` is the longitude in [-180, 180), ``y`` the latitude in
        [-90, 90]; optional ``r`` (accuracy, m), ``z`` (altitude, m) and
        ``t`` (sampling time).
        """
        p = dict(params)
        check_params(p, _LOCATION_RULES)
        device = self._device_id(p)
        self._log("client.set_device_location", of=device, x=p["x"], y=p["y"])
        location = {"key": "location", "value": _pick(p, "x", "y", "r", "z", "t"), **_pick(p, "of")}
        return self.set_device_prop(location, self._continuation(p, cb))

    def get_device_location(
        self, params: Params | None = None, cb: Continuation | None = None
    ) -> Future[Reply]:
        p = dict(params or {})
        check_params(p, {"of": Rule.PLUGIDPUB})
        device = self._device_id(p)
        self._log("client.get_device_location", of=device)
        location = {"key": "location", **_pick(p, "of")}
        return self.get_device_prop(location, self._continuation(p, cb))

    # ------------------------------------------------------------------
    # Data and channels
    # ------------------------------------------------------------------

    def publish_data(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Publish one entry or a list of entries.

        Each entry holds ``channel`` and ``data``; optional ``at``,
        ``expire_at``, ``ttl`` and ``id``.  A single entry is sent unwrapped.
        The reply body holds the oid(s) assigned to the entries.
        """
        p = dict(params)
        check_params(p, {"entries": Rule.MANDATORY})
        raw = p["entries"]
        items = raw if isinstance(raw, (list, tuple)) else [raw]
        entries = [dict(item) if isinstance(item, Mapping) else item for item in items]
        for entry in entries:
            check_params(entry, _ENTRY_RULES)
        self._log("client.publish_data", count=len(entries))
        body: Any = entries[0] if len(entries) == 1 else entries
        descriptor = RequestDescriptor.with_body(HttpMethod.PUT, "data", body)
        return self.request(descriptor, self._continuation(p, cb))

    def retrieve_data(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Read data published on the channels matching ``channel_mask``.

        Optional filters: ``of`` (publishers), ``before``/``after``
        (timestamp or oid), ``at`` (timestamps), ``offset``/``limit``.
        """
        p = dict(params)
        check_params(p, _QUERY_RULES)
        self._log("client.retrieve_data", channel_mask=p["channel_mask"])
        uri = f"data/{escape_channel(p['channel_mask'])}{build_filters(p)}"
        return self.request(RequestDescriptor(HttpMethod.GET, uri), self._continuation(p, cb))

    def remove_data(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """Delete published data selected by ``id``, ``before``, ``after`` or ``at``.

        At least one selector is required.  ``channel_mask`` defaults to
        ``#`` (every channel).  The reply body is the number of entries
        deleted.
        """
        p = dict(params)
        check_params(p, _REMOVE_RULES)
        mask = p.get("channel_mask") or "#"
        self._log("client.remove_data", channel_mask=mask)
        descriptor = RequestDescriptor.with_body(
            HttpMethod.DELETE, f"data/{escape_channel(mask)}", _without(p, "channel_mask")
        )
        return self.request(descriptor, self._continuation(p, cb))

    def get_channels(self, params: Params, cb: Continuation | None = None) -> Future[Reply]:
        """List the channels matching ``channel_mask`` that hold data.

        Accepts the same filters as :meth:`retrieve_data`.
        """
        p = dict(params)
        check_params(p, _QUERY_RULES)
        self._log("client.get_channels", channel_mask=p["channel_mask"])
        uri = f"channel/{escape_channel(p['channel_mask'])}{build_filters(p)}"
        return self.request(RequestDescriptor(HttpMethod.GET, uri), self._continuation(p, cb))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def request(
        self, descriptor: RequestDescriptor, cb: Continuation | None = None
    ) -> Future[Reply]:
        """Send *descriptor* and deliver the outcome to *cb*.

        Raises:
            MissingCredentials: The descriptor needs credentials the client
                lacks.  Raised before any I/O.
        """
        credentials = self._credentials.get()
        ensure_authorized(descriptor, credentials)

        headers, method = build_headers(
            credentials,
            descriptor.method,
            post_only=self.post_only or descriptor.post_only,
        )
        url = self._base_url + descriptor.uri
        body = encode_body(descriptor)
        callback = cb if callable(cb) else None

        self._log("client.request", method=descriptor.method.value, uri=descriptor.uri, body=body)

        def exchange() -> Reply:
            reply = self._exchange(method, url, headers, body, descriptor)
            if callback is not None:
                callback(reply.error, reply.body)
            return reply

        if self._executor is None:
            future: Future[Reply] = Future()
            try:
                future.set_result(exchange())
            except Exception as exc:
                future.set_exception(exc)
            return future
        return self._executor.submit(exchange)

    def _exchange(
        self,
        method: HttpMethod,
        url: str,
        headers: dict[str, str],
        body: str | None,
        descriptor: RequestDescriptor,
    ) -> Reply:
        try:
            response = self._transport.send(method.value, url, headers, body)
        except Exception as exc:
            log.warning(
                "client.transport_failure",
                method=descriptor.method.value,
                uri=descriptor.uri,
                error=str(exc),
            )
            failure = TransportFailure(f"{descriptor.method.value} {descriptor.uri}: {exc}")
            failure.__cause__ = exc
            return Reply(status=None, error=failure, body=None)

        self._log(
            "client.response",
            status=response.status,
            method=descriptor.method.value,
            uri=descriptor.uri,
            body=response.text,
        )
        return decode_response(response.status, response.text)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _device_id(self, params: Params) -> str:
        device = params.get("of") or self._credentials.get().plug_id
        if not device:
            raise InvalidParameter("missing plug-id", field="of", rule=Rule.MANDATORY)
        return device

    @staticmethod
    def _prop_uri(device: str, key: str) -> str:
        return f"device/{device}/{quote_component(key)}"

    @staticmethod
    def _continuation(params: Params, cb: Continuation | None) -> Continuation | None:
        candidate = cb if cb is not None else params.get(CB_KEY)
        return candidate if callable(candidate) else None

    def _adopting(self, cb: Continuation | None) -> Continuation:
        """Wrap *cb* so a successful enrollment reply becomes the new credentials."""

        def adopt(error: Any, device: Any) -> Any:
            if error is None and isinstance(device, Mapping) and device.get("id"):
                auth = {"id": device["id"]}
                if device.get("auth"):
                    auth["password"] = device["auth"]
                self.set_auth(auth)
            if cb is not None:
                return cb(error, device)
            return None

        return adopt

    def _log(self, event: str, **fields: Any) -> None:
        if self._debug:
            log.info(event, **fields)
