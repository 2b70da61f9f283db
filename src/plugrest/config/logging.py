"""structlog setup for the plugrest CLI.

Client traces go to stderr, either as colored console lines or (with
``--log-json``) as JSON lines.  Secrets never reach the output: the
shared chain masks credential fields, including those inside the raw
request and response bodies the client traces in debug mode.

Library users who never call :func:`configure_logging` still get the
client's events through stdlib logging under the ``plugrest`` logger.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

SECRET_KEYS = frozenset({"password", "pass", "auth"})
MASK = "***"

_BODY_SECRET = re.compile(r'"(password|pass|auth)"\s*:\s*(?:"(?:[^"\\]|\\.)*"|[^,}\]\s]+)')


def redact_secrets(
    _logger: Any, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Mask credential fields and credential members of JSON bodies."""
    for key, value in event_dict.items():
        if key in SECRET_KEYS and value is not None:
            event_dict[key] = MASK
        elif key == "body" and isinstance(value, str):
            event_dict[key] = _BODY_SECRET.sub(lambda m: f'"{m.group(1)}": "{MASK}"', value)
    return event_dict


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route structlog and stdlib records through one stderr handler.

    *verbose* opens the ``plugrest`` logger to DEBUG; otherwise only
    warnings (transport failures) are shown.  Repeated calls replace the
    handler rather than stacking a new one.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("plugrest").setLevel(logging.DEBUG if verbose else logging.WARNING)
    # requests' connection pool logs every request at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
