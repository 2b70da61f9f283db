"""ServiceResult and ServiceError: what every service method returns.

INVARIANT: Service methods never raise PlugError; faults become a
ServiceResult with ``ok=False``.  The CLI only ever sees this type.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult.

    ``code`` is the :attr:`~plugrest.errors.PlugError.code` of the fault.
    """

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one client operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the client operation (e.g. ``"publish_data"``).
        data: Decoded reply body under ``"result"``, plus any
            operation-specific keys.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: HTTP status and other exchange metadata.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
