"""DTOs for application services (no dependency on FastAPI or httpx)."""

from kontext.application.dtos.auth import AuthResult
from kontext.application.dtos.cache import InvalidationResult
from kontext.application.dtos.proxy import FileStream, ProxiedResponse

__all__ = [
    "AuthResult",
    "FileStream",
    "InvalidationResult",
    "ProxiedResponse",
]
