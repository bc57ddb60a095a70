"""
Maps arbitrary publishing failures to the shared error taxonomy.

The mapping is destination-agnostic: adapters hand over the raw exception
and receive the same kind of ClassifiedError regardless of which API failed.
classify() is a pure function of its input.
"""

import asyncio
import math
from dataclasses import dataclass
from typing import Any

import httpx
import pydantic

from ..domain.errors import ErrorKind, PublishError

# Graph API error codes (Facebook, Instagram)
GRAPH_AUTH_CODES = frozenset({102, 190})
GRAPH_RATE_LIMIT_CODES = frozenset({4, 17, 32, 613})
GRAPH_PERMISSION_CODES = frozenset({10, *range(200, 300)})


@dataclass(frozen=True)
class ClassifiedError:
    """Normalized view of a failure."""

    kind: ErrorKind
    message: str
    retry_after: int | None = None
    status_code: int | None = None

    @property
    def display_message(self) -> str:
        return with_retry_hint(self.message, self.kind, self.retry_after)

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


def with_retry_hint(message: str, kind: ErrorKind, retry_after: int | None) -> str:
    if kind is ErrorKind.RATE_LIMIT and retry_after is not None:
        return f"{message} Retry after {retry_after} seconds."
    return message


def classify(error: BaseException) -> ClassifiedError:
    """Classify an exception raised while talking to a destination."""
    if isinstance(error, PublishError):
        return ClassifiedError(
            kind=error.kind,
            message=error.message,
            retry_after=error.retry_after,
        )

    if isinstance(error, httpx.HTTPStatusError):
        return _classify_status_error(error)

    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ClassifiedError(
            kind=ErrorKind.TIMEOUT,
            message=f"Request timed out{_describe_request(error)}",
        )

    if isinstance(error, httpx.TransportError):
        return ClassifiedError(
            kind=ErrorKind.UNKNOWN,
            message=f"Network error: {error or type(error).__name__}",
        )

    if isinstance(error, pydantic.ValidationError):
        return ClassifiedError(
            kind=ErrorKind.UPSTREAM_INVALID,
            message=f"Unexpected response shape from {error.title}",
        )

    if isinstance(error, ValueError):
        # json.JSONDecodeError from response.json()
        return ClassifiedError(
            kind=ErrorKind.UPSTREAM_INVALID,
            message=f"Unreadable response: {error}",
        )

    return ClassifiedError(kind=ErrorKind.UNKNOWN, message=str(error) or type(error).__name__)


def _classify_status_error(error: httpx.HTTPStatusError) -> ClassifiedError:
    response = error.response
    status = response.status_code
    body = _json_body(response)
    provider_message = extract_provider_message(body)
    message = provider_message or f"Upstream request failed with status {status}"
    retry_after = parse_retry_after(response.headers.get("retry-after"))
    graph_code = _graph_error_code(body)

    if status == 401:
        kind = ErrorKind.AUTH
    elif status == 403:
        kind = ErrorKind.PERMISSION
    elif status == 429:
        kind = ErrorKind.RATE_LIMIT
    elif status >= 500:
        kind = ErrorKind.UPSTREAM_INVALID
    elif graph_code in GRAPH_AUTH_CODES:
        kind = ErrorKind.AUTH
    elif graph_code in GRAPH_RATE_LIMIT_CODES:
        kind = ErrorKind.RATE_LIMIT
    elif graph_code in GRAPH_PERMISSION_CODES:
        kind = ErrorKind.PERMISSION
    elif status == 408:
        kind = ErrorKind.TIMEOUT
    elif 400 <= status < 500:
        kind = ErrorKind.VALIDATION
    else:
        kind = ErrorKind.UNKNOWN

    return ClassifiedError(
        kind=kind,
        message=message,
        retry_after=retry_after if kind is ErrorKind.RATE_LIMIT else None,
        status_code=status,
    )


def extract_provider_message(body: Any) -> str | None:
    """Pull the most specific human-readable message out of an error body."""
    if not isinstance(body, dict):
        return None

    error = body.get("error")
    if isinstance(error, dict):
        for key in ("message", "error_user_msg"):
            if isinstance(error.get(key), str) and error[key]:
                return error[key]
    elif isinstance(error, str) and error:
        return error

    for key in ("error_description", "detail", "message"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value

    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        value = errors[0].get("message")
        if isinstance(value, str) and value:
            return value

    title = body.get("title")
    if isinstance(title, str) and title:
        return title
    return None


def parse_retry_after(value: str | None) -> int | None:
    """Parse a delta-seconds Retry-After header."""
    if not isinstance(value, str):
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds):
        return None
    return max(int(seconds), 0)


def _graph_error_code(body: Any) -> int | None:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        if isinstance(code, int):
            return code
    return None


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (ValueError, UnicodeDecodeError):
        return None


def _describe_request(error: BaseException) -> str:
    if isinstance(error, httpx.RequestError):
        try:
            request = error.request
        except RuntimeError:
            return ""
        return f": {request.method} {request.url.host}{request.url.path}"
    return ""
