"""Authentication session: at most one token and one user per context.

Every operation reports its outcome as an AuthResult instead of raising, so
UI callers branch on success without exception handling. Session state
changes are broadcast to listeners registered with on_change().
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from kontext.application.dtos.auth import AuthResult
from kontext.domain.entities.record import Record
from kontext.domain.exceptions import BackendError, KontextException
from kontext.infrastructure.backend.client import BackendClient
from kontext.infrastructure.security.jwt import is_token_expired
from kontext.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

SessionListener = Callable[[str | None, Record | None], None]

# Backend statuses that mean the held token itself was rejected.
_TOKEN_REJECTED = frozenset({401, 403})


def _message(error: Exception, fallback: str) -> str:
    if isinstance(error, KontextException) and error.message:
        return error.message
    return fallback


class AuthSession:
    """Token and principal for one client context.

    The backend client reads the token through `token` (see KontextClient),
    so a login here authenticates every later backend call.
    """

    def __init__(
        self,
        backend: BackendClient,
        collection: str = "users",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._backend = backend
        self._collection = collection
        self._clock = clock
        self._token: str | None = None
        self._user: Record | None = None
        self._listeners: list[SessionListener] = []

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def user(self) -> Record | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        """True when a user is held and the token's exp lies in the future."""
        return self._user is not None and not is_token_expired(self._token, self._clock())

    def on_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register listener(token, user); returns a callable that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def save(self, token: str | None, user: Record | None) -> None:
        """Replace token and user together, then notify listeners."""
        self._token, self._user = token or None, user
        for listener in list(self._listeners):
            try:
                listener(self._token, self._user)
            except Exception:
                logger.exception("Auth session listener failed")

    def logout(self) -> None:
        """Clear the session locally. No backend call is made."""
        if self._token is None and self._user is None:
            return
        self.save(None, None)
        logger.info("Auth session cleared")

    async def login(self, email: str, password: str) -> AuthResult:
        try:
            auth = await self._backend.collection(self._collection).auth_with_password(email, password)
        except KontextException as e:
            logger.info("Login failed: %s", e.message)
            return AuthResult(success=False, error=_message(e, "Login failed"))
        self.save(auth.token, auth.record)
        return AuthResult(success=True, user=auth.record, token=auth.token)

    async def register(
        self,
        email: str,
        password: str,
        password_confirm: str,
        name: str | None = None,
    ) -> AuthResult:
        """Create a user record. The session is left unchanged (no auto-login)."""
        body = {"email": email, "password": password, "passwordConfirm": password_confirm}
        if name:
            body["name"] = name
        try:
            record = await self._backend.collection(self._collection).create(body)
        except KontextException as e:
            return AuthResult(success=False, error=_message(e, "Registration failed"))
        return AuthResult(success=True, user=record)

    async def request_password_reset(self, email: str) -> AuthResult:
        try:
            await self._backend.collection(self._collection).request_password_reset(email)
        except KontextException as e:
            return AuthResult(success=False, error=_message(e, "Password reset request failed"))
        return AuthResult(success=True)

    async def refresh(self) -> AuthResult:
        """Exchange the held token for a fresh one.

        A 401/403 answer means the token was rejected: the session is
        cleared. Other failures leave the session as it was.
        """
        if not self._token:
            return AuthResult(success=False, error="Not authenticated")
        try:
            auth = await self._backend.collection(self._collection).auth_refresh(self._token)
        except BackendError as e:
            if e.status_code in _TOKEN_REJECTED:
                logger.info("Token rejected on refresh (%s); clearing session", e.status_code)
                self.logout()
            return AuthResult(success=False, error=_message(e, "Token refresh failed"))
        except KontextException as e:
            return AuthResult(success=False, error=_message(e, "Token refresh failed"))
        self.save(auth.token, auth.record)
        return AuthResult(success=True, user=auth.record, token=auth.token)
