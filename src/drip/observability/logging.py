"""Structured logging for DRIP faucet.

Every module logs through ``logging.getLogger(__name__)``; a single root
handler renders stdlib records with structlog, so ``extra={...}`` fields,
the per-request context and the chosen format apply to all of them.

Per-request context (``request_id``, ``channel``, ``address``, ``user_id``)
lives in structlog's contextvars and is merged into every record emitted
while a request is being handled, including records from the send task.
"""

import logging
import sys
import uuid
from typing import Any, TextIO

import structlog

# Exact field names only; "key" and "token" alone are legitimate ledger fields
REDACTED_FIELDS = frozenset(
    {
        "private_key",
        "wallet_private_key",
        "secret",
        "password",
        "api_key",
        "bot_token",
        "app_token",
        "auth_token",
        "bearer_token",
        "access_token",
        "signing_secret",
    }
)

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("aiohttp.access", "slack_bolt", "slack_sdk")

_handler: logging.Handler | None = None


def _redact_sensitive(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Redact sensitive fields from log events."""
    for key in event_dict:
        if key.lower() in REDACTED_FIELDS:
            event_dict[key] = "[REDACTED]"
    return event_dict


def build_formatter(log_format: str = "json") -> structlog.stdlib.ProcessorFormatter:
    """Build the formatter that renders stdlib records as structured events.

    Parameters
    ----------
    log_format : str
        ``json`` for one JSON object per line, anything else for console output.

    Returns
    -------
    structlog.stdlib.ProcessorFormatter
        Formatter for the root handler.
    """
    pre_chain: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_sensitive,
    ]

    if log_format.lower() == "json":
        render: list[structlog.typing.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render = [structlog.dev.ConsoleRenderer(colors=True)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
    )


def configure_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Calling it again replaces the handler installed by the previous call.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    log_format : str
        Output format (json or text).
    stream : TextIO | None
        Destination; stdout when omitted. The CLI passes stderr so its
        own output stays machine-readable.
    """
    global _handler

    try:
        log_level = getattr(logging, level.upper())
    except AttributeError:
        raise ValueError(
            f"Invalid log level: {level!r}. "
            "Valid levels are: DEBUG, INFO, WARNING, ERROR, CRITICAL."
        ) from None

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(build_formatter(log_format))

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(log_level)
    _handler = handler

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def new_request_id(channel: str = "req") -> str:
    """Start a request context for an ingress channel and return its id.

    Any context left over from a previous request in the same task is dropped.
    """
    request_id = f"{channel}-{uuid.uuid4().hex[:12]}"
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, channel=channel)
    return request_id


def bind_request_context(**fields: Any) -> None:
    """Attach fields such as ``address`` or ``user_id`` to the current request."""
    structlog.contextvars.bind_contextvars(**fields)


def get_request_id() -> str | None:
    """Request id of the current context, if any."""
    return structlog.contextvars.get_contextvars().get("request_id")


def clear_request_id() -> None:
    """Drop the current request context."""
    structlog.contextvars.clear_contextvars()
