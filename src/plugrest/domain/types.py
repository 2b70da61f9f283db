"""Wire-level enums for the CloudPlugs REST protocol."""

from __future__ import annotations

from enum import StrEnum


class HttpMethod(StrEnum):
    """HTTP verbs used by the platform."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Header(StrEnum):
    """Request headers understood by the platform."""

    MASTER = "X-Plug-Master"
    PLUG_ID = "X-Plug-Id"
    EMAIL = "X-Plug-Email"
    AUTH = "X-Plug-Auth"
    METHOD_OVERRIDE = "X-HTTP-Method-Override"
    CONTENT_TYPE = "Content-Type"


JSON_CONTENT_TYPE = "application/json"
