"""Operator tokens: signed JWT pairs, per-operator versioning, and revocation.

Each token carries the operator's ``token_version`` as ``ver``. Logging out
bumps that version, which retires every token minted before it; individual
tokens (a used refresh token, the access token presented at logout) are
additionally parked in the Redis blocklist until they would expire anyway.
Blocklist outages raise ``BlocklistUnavailable`` so callers fail closed.
"""

import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

import jwt
import redis
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed

from core.redis_client import get_redis_client

ACCESS = "access"
REFRESH = "refresh"


class BlocklistUnavailable(Exception):
    """Raised when the Redis blocklist cannot be read or written."""


class TokenPair(NamedTuple):
    access: str
    refresh: str


def _lifetime(token_type: str) -> timedelta:
    if token_type == ACCESS:
        return timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES)
    return timedelta(hours=settings.REFRESH_TOKEN_TTL_HOURS)


class TokenService:
    """Mint, read, and revoke operator tokens."""

    ALGORITHM = "HS256"
    BLOCKLIST_PREFIX = "rbac:revoked-jti:"

    @classmethod
    def generate_tokens(cls, user) -> TokenPair:
        """Mint an access/refresh pair stamped with the operator's current version."""
        issued_at = datetime.now(timezone.utc)
        return TokenPair(cls._sign(user, ACCESS, issued_at), cls._sign(user, REFRESH, issued_at))

    @classmethod
    def _sign(cls, user, token_type: str, issued_at: datetime) -> str:
        claims = {
            "sub": str(user.id),
            "jti": uuid.uuid4().hex,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + _lifetime(token_type)).timestamp()),
            "type": token_type,
            "role": user.role.name if user.role_id else None,
            "ver": user.token_version,
        }
        return jwt.encode(claims, settings.SECRET_KEY, algorithm=cls.ALGORITHM)

    @classmethod
    def decode_token(cls, token: str, expected_type: str | None = None) -> dict[str, Any]:
        """Verify signature and expiry; with ``expected_type``, also the token kind."""
        try:
            claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[cls.ALGORITHM])
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationFailed("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationFailed("Invalid token") from exc

        if expected_type and claims.get("type") != expected_type:
            raise AuthenticationFailed("Invalid token type")
        return claims

    @staticmethod
    def is_current(claims: dict[str, Any], user) -> bool:
        """False once the operator has logged out since the token was minted."""
        return claims.get("ver") == user.token_version

    @classmethod
    def block_token(cls, jti: str, exp: int) -> None:
        """Revoke one token until its own expiry."""
        seconds_left = max(1, exp - int(time.time()))
        try:
            get_redis_client().setex(cls.BLOCKLIST_PREFIX + jti, seconds_left, "1")
        except redis.RedisError as exc:
            raise BlocklistUnavailable("Redis unavailable while blocklisting") from exc

    @classmethod
    def is_token_blocked(cls, jti: str) -> bool:
        try:
            return get_redis_client().get(cls.BLOCKLIST_PREFIX + jti) is not None
        except redis.RedisError as exc:
            raise BlocklistUnavailable("Redis unavailable while checking blocklist") from exc


__all__ = ["ACCESS", "REFRESH", "BlocklistUnavailable", "TokenPair", "TokenService"]
