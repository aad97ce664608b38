"""Structured log field names.

Core record keys come first, then the keys bound by public API
instrumentation, then cache correlation keys.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"
SERVICE = "service"
ENVIRONMENT = "environment"

COMPONENT_ID = "component_id"
API_NAME = "api_name"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
STAGE = "stage"
CONCERN = "concern"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"

CACHE_KEY = "cache_key"
CACHE_PREFIX = "cache_prefix"
CHUNK_INDEX = "chunk_index"
CATEGORY = "category"
