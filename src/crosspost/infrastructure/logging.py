"""
Structured logging for the publishing core.

- JSON lines in deployed environments, console rendering for local runs
- Batch correlation id shared by every adapter task of one dispatch
- Credential redaction before anything is rendered
"""

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from urllib.parse import urlsplit

import structlog

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Event keys whose values are credentials
SENSITIVE_KEYS = frozenset({"access_token", "authorization", "token", "client_secret"})


def configure_logging(service_name: str, level: str = "INFO", json: bool = True) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Args:
        service_name: Added to every event as ``service``
        level: Minimum level name (DEBUG, INFO, ...)
        json: Render JSON lines; console output otherwise
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _static_fields(service=service_name),
            _add_correlation_id,
            redact_credentials,
            structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def _static_fields(**fields):
    def processor(logger, method_name, event_dict):
        event_dict.update(fields)
        return event_dict

    return processor


def _add_correlation_id(logger, method_name, event_dict):
    cid = correlation_id.get()
    if cid:
        event_dict.setdefault("correlation_id", cid)
    return event_dict


def redact_credentials(logger, method_name, event_dict):
    """Mask credential values that were passed as event fields."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = sanitize_for_logging(str(event_dict[key]), visible_chars=4)
    return event_dict


def set_correlation_id(cid: str) -> None:
    correlation_id.set(cid)


def get_correlation_id() -> str:
    return correlation_id.get()


@contextmanager
def batch_scope(batch_id: str) -> Iterator[str]:
    """
    Tag every event logged inside the block with ``batch_id``.

    Tasks created inside the block (one per destination) inherit the id.
    The previous id is restored on exit.
    """
    token = correlation_id.set(batch_id)
    try:
        yield batch_id
    finally:
        correlation_id.reset(token)


class Timer:
    """
    Wall-clock timer for publish calls.

        with Timer() as timer:
            result = await adapter.publish(...)
        logger.info("Post published", duration_ms=timer.duration_ms)
    """

    def __init__(self) -> None:
        self.started: float | None = None
        self.stopped: float | None = None

    def __enter__(self) -> "Timer":
        self.started = time.perf_counter()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stopped = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        if self.started is None:
            return 0.0
        end = self.stopped if self.stopped is not None else time.perf_counter()
        return round((end - self.started) * 1000, 2)


def sanitize_for_logging(value: str, visible_chars: int = 8) -> str:
    """Keep a short prefix of a secret so log lines stay correlatable."""
    if not value:
        return ""
    if len(value) <= visible_chars:
        return value
    return value[:visible_chars] + "..."


def sanitize_url(url: str) -> str:
    """Drop query string and fragment, which may carry signed tokens."""
    if not url:
        return ""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"
