"""Identifier and name grammars.

Plug-ids name devices (``dev-``), panion devices (``com-``) and models
(``mod-``).  Oids are the 24-hex identifiers the platform assigns to
stored data entries.  Channels are ``/``-separated names; channel masks
additionally allow ``+`` (one segment) and a trailing ``#`` (the rest).
"""

from __future__ import annotations

import re
from typing import Any

ID_PATTERNS: dict[str, re.Pattern[str]] = {
    "plugidpub": re.compile(r"^(?:dev|com)-.+"),
    "plugidmod": re.compile(r"^mod-.+"),
    "oid": re.compile(r"^[0-9a-f]{24}\Z", re.IGNORECASE),
}

CHANNEL_PATTERN = re.compile(r"^(?:[^/+#]+/)*[^/+#]+\Z")
CHANNEL_MASK_PATTERN = re.compile(r"^(?:(?:[^/+#]+|\+)/)*(?:[^/+#]+|\+|#)\Z")
URL_PATTERN = re.compile(r"^(((https?):)?//([^@]+@)?)?[-A-Z0-9.]+(:\d+)?(/.*)?\Z", re.IGNORECASE)


def _matches(pattern: re.Pattern[str], value: Any) -> bool:
    return isinstance(value, str) and pattern.match(value) is not None


def is_plug_id_pub(value: Any) -> bool:
    """Public plug-id: a device (``dev-``) or companion (``com-``)."""
    return _matches(ID_PATTERNS["plugidpub"], value)


def is_plug_id_mod(value: Any) -> bool:
    """Model plug-id (``mod-``)."""
    return _matches(ID_PATTERNS["plugidmod"], value)


def is_oid(value: Any) -> bool:
    return _matches(ID_PATTERNS["oid"], value)


def is_email(value: Any) -> bool:
    """Loose heuristic: an ``@`` somewhere after the first character."""
    return isinstance(value, str) and value.find("@") > 0


def is_channel(value: Any) -> bool:
    return _matches(CHANNEL_PATTERN, value)


def is_channel_mask(value: Any) -> bool:
    return _matches(CHANNEL_MASK_PATTERN, value)


def is_url(value: Any) -> bool:
    return _matches(URL_PATTERN, value)
