"""Error codes local to the novel cache service."""

CACHE_DISABLED = "CACHE_DISABLED"
CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"
CACHE_OVERSIZE = "CACHE_OVERSIZE"
CACHE_CORRUPT = "CACHE_CORRUPT"
