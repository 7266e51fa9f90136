"""Security helpers: backend token inspection."""

from kontext.infrastructure.security.jwt import is_token_expired, token_expiry

__all__ = ["is_token_expired", "token_expiry"]
