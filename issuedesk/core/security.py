"""
JWT session tokens and password hashing (bcrypt).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from issuedesk.core.config import Settings
from issuedesk.core.exceptions import InvalidToken, Unauthenticated
from issuedesk.core.policy import Actor, Role, canonical_id

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_LIFETIME = timedelta(hours=1)
_TOKEN_TYPE = "access"
_BEARER_PREFIX = "Bearer"

# bcrypt only reads the first 72 bytes of a secret
MAX_PASSWORD_BYTES = 72


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # unknown or corrupt hash format
        return False


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── JWT tokens ──────────────────────────────────────────────────────
def strip_bearer(raw: str | None) -> str | None:
    """Return the token part of an ``Authorization`` header value."""
    if raw is None:
        return None
    token = raw.strip().removeprefix(_BEARER_PREFIX).strip()
    return token or None


class TokenService:
    """Issues and verifies session tokens with a process-wide secret."""

    def __init__(self, settings: Settings):
        self._secret = settings.SECRET_KEY
        self._algorithm = settings.ALGORITHM

    def issue(self, user: Any, now: datetime | None = None) -> str:
        """Sign a token for *user* that expires one hour after *now*."""
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": canonical_id(user.id),
            "role": Role.coerce(user.role).value,
            "username": user.username,
            "email": user.email,
            "phone_number": user.phone_number,
            "type": _TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + TOKEN_LIFETIME,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict:
        """Return the claim set of a valid token, else raise ``InvalidToken``."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidToken() from exc
        if payload.get("type") != _TOKEN_TYPE or not payload.get("sub"):
            raise InvalidToken()
        return payload

    def verify(self, authorization: str | None) -> Actor:
        """Turn a raw ``Authorization`` header value into an ``Actor``."""
        token = strip_bearer(authorization)
        if token is None:
            raise Unauthenticated()
        payload = self.decode(token)
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise InvalidToken() from exc
        return Actor(
            id=canonical_id(payload["sub"]),
            role=role,
            username=payload.get("username") or "",
            email=payload.get("email") or "",
            phone_number=payload.get("phone_number"),
        )
