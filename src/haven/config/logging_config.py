"""
HAVEN Logging Configuration

structlog setup for the session core:
- JSON lines outside development, console rendering in development
- Per-operation context (session, operation name, operation id)
- Redaction of secrets and of free-text user content

SECURITY: Free-text fields (feedback notes, pause and emergency
reasons, memory descriptions) never reach a log line; only
identifiers, states and scores do.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Callable, Iterator
from uuid import uuid4

import structlog

from haven.config.settings import Settings


# Keys whose values are replaced wherever they appear in an event
REDACTED_KEYS: frozenset[str] = frozenset({
    "password",
    "secret",
    "api_key",
    "authorization",
    "notes",
    "reason",
    "description",
})

REDACTED = "[REDACTED]"


def _is_redacted(key: str) -> bool:
    key = key.lower()
    return any(marker in key for marker in REDACTED_KEYS)


def _scrub(key: str, value: Any) -> Any:
    if _is_redacted(key):
        return REDACTED
    if isinstance(value, dict):
        return {k: _scrub(k, v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(key, item) for item in value]
    return value


def redact_user_content(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Replace secrets and free-text user content, including nested payloads."""
    return {
        key: value if key == "event" else _scrub(key, value)
        for key, value in event_dict.items()
    }


def service_context(env: str, version: str) -> Callable:
    """Processor stamping every entry with service, environment and version."""
    def processor(
        logger: logging.Logger,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        event_dict.setdefault("service", "haven-core")
        event_dict.setdefault("env", env)
        event_dict.setdefault("version", version)
        return event_dict
    return processor


def build_processors(settings: Settings, version: str) -> list[Any]:
    """Processor chain for the configured environment."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        redact_user_content,
        service_context(settings.env, version),
    ]

    if settings.env == "development":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    return processors


def configure_logging(settings: Settings, version: str = "0.1.0") -> None:
    """
    Configure structlog and the stdlib bridge.

    Call once when the host process starts the core.
    """
    level = getattr(logging, settings.log_level.upper())

    structlog.configure(
        processors=build_processors(settings, version),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # SQL echo stays controlled by settings.debug, not the root level
    for noisy in ("sqlalchemy.engine", "httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def operation_context(session_id: Any, operation: str) -> Iterator[str]:
    """
    Bind session id, operation name and a fresh operation id for the
    duration of one core operation. Context bound by the caller is
    restored on exit.

    Yields:
        The operation id, for correlating events and errors
    """
    operation_id = uuid4().hex
    with structlog.contextvars.bound_contextvars(
        session_id=str(session_id),
        operation=operation,
        operation_id=operation_id,
    ):
        yield operation_id
