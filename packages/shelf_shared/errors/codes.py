"""Machine-readable error codes shared by every Shelf component.

Components add their own codes (``CACHE_*`` for the novel cache) next to the
code that raises them; this module only holds codes any layer may emit.
"""

# Caller supplied bad input.
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"

# The KV store or another remote answered badly or not at all.
DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_TIMEOUT = "DEPENDENCY_TIMEOUT"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"

# Anything else.
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
