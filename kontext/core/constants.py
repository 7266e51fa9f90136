"""Core constants: backend paths, realtime protocol names and cache literals.

Single source of truth for the backend's URL layout and the cache key
structure (DRY). Used by the backend client, realtime channel and cache keys.
"""

# Backend REST layout (relative to backend_url)
BACKEND_API_PREFIX = "/api"
RECORDS_PATH = "/api/collections/{collection}/records"
FILES_PATH = "/api/files/{collection}/{record_id}/{filename}"
REALTIME_PATH = "/api/realtime"

# Realtime protocol
REALTIME_CONNECT_EVENT = "PB_CONNECT"
WILDCARD_TARGET = "*"

# Cache key delimiter between prefix and sanitized namespace
CACHE_KEY_SEP = ":"

# Binary content at a file URL never changes (backend versions filenames).
FILE_CACHE_CONTROL = "public, max-age=31536000, immutable"
DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"

# Backend paths the request proxy may reach (first segment after /api/).
PROXYABLE_ROOTS = frozenset({"collections", "files", "health"})
