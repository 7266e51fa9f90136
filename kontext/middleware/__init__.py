"""HTTP middleware: timeout and request ID.

Applied in main app; order matters (first added = outermost).
Import and use from kontext.main.
"""

from kontext.middleware.request_id import RequestIDMiddleware
from kontext.middleware.timeout import TimeoutMiddleware

__all__ = [
    "RequestIDMiddleware",
    "TimeoutMiddleware",
]
