"""BaseService: blocking foundation for the plugrest services.

Every service receives a :class:`RestClient` at construction time and
turns each asynchronous operation into a :class:`ServiceResult`:
synchronous faults (validation, credentials) and network faults
(HTTP status, transport) end up in the same ``error`` slot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

from plugrest.errors import HttpStatus, InvalidParameter, PlugError
from plugrest.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from plugrest.client.request import Reply
    from plugrest.client.rest import RestClient

logger = logging.getLogger(__name__)


def compact(**fields: Any) -> dict[str, Any]:
    """Keyword arguments minus the ones left at None."""
    return {k: v for k, v in fields.items() if v is not None}


def error_from(exc: PlugError, body: Any = None) -> ServiceError:
    """Map a :class:`PlugError` to its structured ``ServiceError``."""
    detail: dict[str, Any] = {}
    if isinstance(exc, InvalidParameter):
        detail = compact(field=exc.field, rule=exc.rule.value if exc.rule else None)
    elif isinstance(exc, HttpStatus):
        detail = {"status": exc.status}
        if body is not None:
            detail["body"] = body
    elif exc.__cause__ is not None:
        detail = {"cause": repr(exc.__cause__)}
    return ServiceError(code=exc.code, message=str(exc), detail=detail)


class BaseService:
    """Abstract base for the service-layer classes.

    Usage::

        class DataService(BaseService):
            def publish(self, channel: str, data: Any) -> ServiceResult:
                return self._run(
                    "publish_data",
                    lambda: self._client.publish_data(
                        {"entries": {"channel": channel, "data": data}}
                    ),
                )
    """

    def __init__(self, client: RestClient) -> None:
        self._client = client

    def _run(
        self,
        op: str,
        call: Callable[[], Future[Reply]],
        *,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        """Invoke *call*, wait for its reply and wrap the outcome."""
        try:
            reply = call().result()
        except PlugError as exc:
            logger.debug("%s rejected: %s", op, exc)
            return ServiceResult(ok=False, op=op, error=error_from(exc))

        meta = {"status": reply.status}
        if reply.error is not None:
            return ServiceResult(
                ok=False,
                op=op,
                error=error_from(reply.error, reply.body),
                meta=meta,
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"result": reply.body},
            warnings=warnings or [],
            meta=meta,
        )
