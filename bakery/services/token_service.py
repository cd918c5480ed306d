# Overview: Stateless bearer tokens (signed JWT) carrying the caller's id and role.

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from jose import JWTError, jwt

from ..time_utils import utcnow


class InvalidTokenError(Exception):
    """Raised for tampered, expired, or malformed bearer tokens."""
    pass


@dataclass(frozen=True)
class TokenIdentity:
    id: int
    role: str
    email: str | None = None


def issue_token(user, *, secret: str, algorithm: str = "HS256", expires_in: timedelta = timedelta(days=7)) -> str:
    """Sign a token for a user. Pure function of its inputs plus the clock."""
    if not secret:
        raise ValueError("Token secret is not configured")
    now = utcnow()
    claims = {
        "sub": str(user.id),
        "role": user.role,
        "email": user.email,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_token(token: str, *, secret: str, algorithm: str = "HS256") -> TokenIdentity:
    """
    Verify signature and expiry and return the identity.

    Raises InvalidTokenError on any failure; never touches the database.
    """
    if not token or not secret:
        raise InvalidTokenError("Token missing")
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    sub = claims.get("sub")
    role = claims.get("role")
    if not sub or not role:
        raise InvalidTokenError("Token is missing required claims")
    try:
        user_id = int(sub)
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError("Token subject is not a user id") from exc

    return TokenIdentity(id=user_id, role=role, email=claims.get("email"))
