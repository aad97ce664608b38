"""Exceptions raised by the shared HTTP client and request-body helpers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HttpError(Exception):
    """Root of every shared HTTP helper failure."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class HttpClientError(HttpError):
    """An outbound call did not produce a usable response.

    ``retryable`` tells callers whether repeating the same request might work.
    """

    method: str
    url: str
    retryable: bool = False


@dataclass(frozen=True)
class HttpRequestError(HttpClientError):
    """No response arrived: connect failure, timeout, or protocol error."""

    cause: Exception | None = None


@dataclass(frozen=True)
class HttpStatusError(HttpClientError):
    """The server answered with a 4xx or 5xx status."""

    status_code: int = 0
    response_body: str = ""


@dataclass(frozen=True)
class HttpJsonDecodeError(HttpClientError):
    """A 2xx response carried a body that is not JSON."""

    status_code: int = 0
    response_body: str = ""
    cause: Exception | None = None


@dataclass(frozen=True)
class InvalidBodyError(HttpError):
    """An inbound request body could not be used."""


@dataclass(frozen=True)
class InvalidJsonBodyError(InvalidBodyError):
    """An inbound request body is empty or not JSON."""
