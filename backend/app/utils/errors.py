"""
Error Types
===========

Errors carry a kind (see ErrorKind) and a human-readable message.

- ServiceError and its subclasses are raised by the upstream wrappers
  (weather, satellite) and never leave the router; it turns them into
  a 500 with {error, details}.
- ApiError is raised by routes when they want a specific status code.
"""

from typing import Any, Optional

import httpx

from app.models import ErrorKind


class ServiceError(Exception):
    """A failure with a known kind."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ServiceError):
    """Missing API key or similar setup problem."""
    kind = ErrorKind.CONFIGURATION


class UpstreamError(ServiceError):
    """A third-party API failed."""
    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DataError(ServiceError):
    """Bad or missing input data."""
    kind = ErrorKind.DATA


class ApiError(Exception):
    """
    Raised by routes to return {error, details} with a given status code.

    Example:
        raise ApiError(400, "No stations found in stations.json")
    """

    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


def _response_message(response: httpx.Response, *paths: tuple[str, ...]) -> Optional[str]:
    """Read the first message-like field out of an error response body."""
    try:
        body: Any = response.json()
    except ValueError:
        return None
    for path in paths:
        current = body
        for key in path:
            if not isinstance(current, dict):
                current = None
                break
            current = current.get(key)
        if current:
            return str(current)
    return None


def format_http_error(exc: Exception) -> str:
    """
    Turn an httpx failure into "HTTP <status>: <message>".

    The message comes from the response body's "message" or "error" field
    when there is one, else from the exception. Network failures (no
    response) are just the exception text.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        message = _response_message(exc.response, ("message",), ("error",)) or str(exc)
        return f"HTTP {status}: {message}"
    return str(exc) or exc.__class__.__name__ or "Request failed"


def upstream_error(
    service: str,
    exc: Exception,
    fallback: str,
    message_paths: tuple[tuple[str, ...], ...] = (("message",), ("error",)),
) -> UpstreamError:
    """
    Build the UpstreamError for a failed weather/FIRMS call.

    Args:
        service: Prefix like "Weather API" or "FIRMS"
        exc: What httpx raised
        fallback: Message when nothing better is available
        message_paths: Where to look for a message in the error body

    Returns:
        UpstreamError with "<service> error <status>: <message>"
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        message = _response_message(exc.response, *message_paths) or str(exc) or fallback
        return UpstreamError(f"{service} error {status}: {message}", status_code=status)
    return UpstreamError(str(exc) or fallback)
