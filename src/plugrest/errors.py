"""Fault taxonomy for the REST client.

Validation and precondition faults are raised synchronously, before any
network I/O.  Network-originating faults (``HttpStatus``,
``TransportFailure``) are never raised by the client: they are delivered
to the continuation and carried by the returned ``Reply``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plugrest.validation.rules import Rule


class PlugError(Exception):
    """Base class for every fault surfaced by plugrest."""

    code = "PLUG_ERROR"


class InvalidParameter(PlugError):
    """A parameter failed a validation rule.

    Attributes:
        field: Offending field (or comma-joined field group), if known.
        rule: Violated rule, if the fault comes from a rule.
    """

    code = "INVALID_PARAMETER"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        rule: Rule | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.rule = rule


class MissingCredentials(PlugError):
    """The request needs credentials the client does not hold."""

    code = "MISSING_CREDENTIALS"


class AlreadyEnrolled(PlugError):
    """A controller enrollment was attempted by an already enrolled client."""

    code = "ALREADY_ENROLLED"


class HttpStatus(PlugError):
    """The server answered with a non-2xx status code."""

    code = "HTTP_STATUS"

    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP status {status}")
        self.status = status

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HttpStatus):
            return NotImplemented
        return self.status == other.status

    def __hash__(self) -> int:
        return hash((HttpStatus, self.status))


class TransportFailure(PlugError):
    """The transport could not complete the exchange."""

    code = "TRANSPORT_FAILURE"


class RuleDefinitionError(ValueError):
    """A rule set names a rule outside the closed vocabulary.

    Signals a library bug rather than bad user input, hence not a
    :class:`PlugError`.
    """
