"""Rule vocabulary and per-rule validators.

Each :class:`Rule` member carries a typed validator returning a
:class:`Check`.  Validators never raise and never touch the parameter
mapping: coercion is expressed as ``Check(ok=True, value=<normalized>)``
and the engine decides whether to write the value back.

``mandatory`` and ``some`` are presence rules evaluated by the engine;
their validators accept everything.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from plugrest.domain.ids import (
    is_channel,
    is_channel_mask,
    is_email,
    is_oid,
    is_plug_id_mod,
    is_plug_id_pub,
    is_url,
)
from plugrest.domain.timestamps import collapse_integral, normalize_timestamp, parse_number
from plugrest.errors import RuleDefinitionError


class Rule(StrEnum):
    """Closed set of validation rules; values are the wire tokens."""

    MANDATORY = "mandatory"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    POSITIVE = "positive"
    CHANNEL = "channel"
    CHANNEL_MASK = "channel mask"
    PLUGIDPUB = "plugidpub"
    PLUGIDMOD = "plugidmod"
    PLUGIDPUB_OR_EMAIL = "plugidpub|email"
    PLUGIDPUB_OR_LIST = "plugidpub|[plugidpub]"
    CSV_PLUGIDPUB = "csv plugidpub"
    OID_OR_LIST = "oid|[oid]"
    OID_LIST = "[oid]"
    TIMESTAMP = "timestamp"
    TIMESTAMP_OR_OID = "timestamp|oid"
    CSV_TIMESTAMP = "csv timestamp"
    URL = "url"
    PASSWORD = "password"
    SOME = "some"

    @classmethod
    def parse(cls, token: str) -> Rule:
        """Resolve a wire token, raising :class:`RuleDefinitionError` if unknown."""
        try:
            return cls(token.strip())
        except ValueError:
            msg = f"unrecognized rule: {token!r}"
            raise RuleDefinitionError(msg) from None

    @property
    def is_group(self) -> bool:
        """Whether the rule applies to a field group as a whole."""
        return self is Rule.SOME


@dataclass(frozen=True)
class Check:
    """Outcome of a single validator: pass/fail plus the normalized value."""

    ok: bool
    value: Any = None


def _fail(value: Any = None) -> Check:
    return Check(ok=False, value=value)


def _as_list(value: Any, sep: str | None = None) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if sep is not None and isinstance(value, str):
        return value.split(sep)
    return [value]


# ---------------------------------------------------------------------------
# Type rules
# ---------------------------------------------------------------------------


def _check_string(value: Any) -> Check:
    if isinstance(value, str):
        return Check(True, value)
    if isinstance(value, bool) or parse_number(value) is None:
        return _fail(value)
    return Check(True, str(collapse_integral(value)))


def _check_number(value: Any) -> Check:
    number = parse_number(value)
    return _fail(value) if number is None else Check(True, collapse_integral(number))


def _check_boolean(value: Any) -> Check:
    return Check(True, bool(value))


def _check_positive(value: Any) -> Check:
    number = parse_number(value)
    if number is None or number < 0:
        return _fail(value)
    return Check(True, value)


def _check_password(value: Any) -> Check:
    return Check(bool(value), value)


def _accept(value: Any) -> Check:
    return Check(True, value)


def _predicate(test: Callable[[Any], bool]) -> Callable[[Any], Check]:
    def check(value: Any) -> Check:
        return Check(test(value), value)

    return check


# ---------------------------------------------------------------------------
# Identifier rules
# ---------------------------------------------------------------------------


def _check_plugidpub_or_email(value: Any) -> Check:
    return Check(is_plug_id_pub(value) or is_email(value), value)


def _check_plugidpub_or_list(value: Any) -> Check:
    if isinstance(value, (list, tuple)):
        return Check(all(is_plug_id_pub(v) for v in value), value)
    return Check(is_plug_id_pub(value), value)


def _check_csv_plugidpub(value: Any) -> Check:
    if not isinstance(value, (str, list, tuple)):
        return _fail(value)
    items = _as_list(value, ",")
    if not all(is_plug_id_pub(v) for v in items):
        return _fail(value)
    return Check(True, ",".join(items))


def _check_oid_or_list(value: Any) -> Check:
    return Check(all(is_oid(v) for v in _as_list(value)), value)


def _check_oid_list(value: Any) -> Check:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return _fail(value)
    return Check(all(is_oid(v) for v in value), list(value))


# ---------------------------------------------------------------------------
# Timestamp rules
# ---------------------------------------------------------------------------


def _check_timestamp(value: Any) -> Check:
    normalized = normalize_timestamp(value)
    return _fail(value) if normalized is None else Check(True, normalized)


def _check_timestamp_or_oid(value: Any) -> Check:
    if is_oid(value):
        return Check(True, value)
    return _check_timestamp(value)


def _check_csv_timestamp(value: Any) -> Check:
    if not isinstance(value, (str, list, tuple)):
        return _fail(value)
    normalized: list[str] = []
    for item in _as_list(value, ","):
        ms = normalize_timestamp(item)
        if ms is None:
            return _fail(value)
        normalized.append(str(ms))
    return Check(True, ",".join(normalized))


_VALIDATORS: dict[Rule, Callable[[Any], Check]] = {
    Rule.MANDATORY: _accept,
    Rule.STRING: _check_string,
    Rule.NUMBER: _check_number,
    Rule.BOOLEAN: _check_boolean,
    Rule.POSITIVE: _check_positive,
    Rule.CHANNEL: _predicate(is_channel),
    Rule.CHANNEL_MASK: _predicate(is_channel_mask),
    Rule.PLUGIDPUB: _predicate(is_plug_id_pub),
    Rule.PLUGIDMOD: _predicate(is_plug_id_mod),
    Rule.PLUGIDPUB_OR_EMAIL: _check_plugidpub_or_email,
    Rule.PLUGIDPUB_OR_LIST: _check_plugidpub_or_list,
    Rule.CSV_PLUGIDPUB: _check_csv_plugidpub,
    Rule.OID_OR_LIST: _check_oid_or_list,
    Rule.OID_LIST: _check_oid_list,
    Rule.TIMESTAMP: _check_timestamp,
    Rule.TIMESTAMP_OR_OID: _check_timestamp_or_oid,
    Rule.CSV_TIMESTAMP: _check_csv_timestamp,
    Rule.URL: _predicate(is_url),
    Rule.PASSWORD: _check_password,
    Rule.SOME: _accept,
}

_MESSAGES: dict[Rule, str] = {
    Rule.CHANNEL: "invalid channel",
    Rule.CHANNEL_MASK: "invalid channel mask",
    Rule.PLUGIDPUB: "invalid plug-id",
    Rule.PLUGIDMOD: "invalid plug-id",
    Rule.PLUGIDPUB_OR_LIST: "invalid plug-id",
    Rule.CSV_PLUGIDPUB: "invalid plug-id",
    Rule.URL: "invalid URL",
    Rule.CSV_TIMESTAMP: "invalid timestamps",
}


def validator_for(rule: Rule) -> Callable[[Any], Check]:
    """Return the validator bound to *rule*."""
    return _VALIDATORS[rule]


def describe_failure(rule: Rule, field: str, value: Any) -> str:
    """Human-readable message for a failed *rule* on *field*."""
    if rule is Rule.PASSWORD:
        return "invalid password"
    label = _MESSAGES.get(rule, "invalid parameter")
    return f"{label}: {field}={value!r}"
