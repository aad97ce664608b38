"""HTTP helpers shared by the KV substrate and the cache facade."""

from .client import AsyncHttpClient, decode_json
from .errors import (
    HttpClientError,
    HttpError,
    HttpJsonDecodeError,
    HttpRequestError,
    HttpStatusError,
    InvalidBodyError,
    InvalidJsonBodyError,
)
from .server import create_app, read_json_body, read_raw_body, run_app

__all__ = [
    "AsyncHttpClient",
    "HttpClientError",
    "HttpError",
    "HttpJsonDecodeError",
    "HttpRequestError",
    "HttpStatusError",
    "InvalidBodyError",
    "InvalidJsonBodyError",
    "create_app",
    "decode_json",
    "read_json_body",
    "read_raw_body",
    "run_app",
]
