# Overview: Password hashing, credential checks, and token issuance for staff logins.

"""
Authentication Service

Passwords are hashed with bcrypt (cost factor 12). Login returns a signed
bearer token (see token_service); there is no server-side session table, so
logout is purely client-side and a deactivated user keeps API access until
their token expires.
"""

import re
from datetime import timedelta

import bcrypt
from flask import current_app

from ..errors import Unauthorized, ValidationError
from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from . import token_service


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_RE.match(value):
        raise ValidationError("A valid email is required", fields=["email"])
    return value


def validate_password_strength(password: str) -> None:
    """
    Minimum 6 characters with at least one letter and one digit.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 6:
        raise PasswordValidationError("Password must be at least 6 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12 (validated first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(email: str, password: str) -> User:
    """
    Check credentials. Same message for unknown email and wrong password.

    Raises Unauthorized on failure.
    """
    user = db.session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        current_app.logger.info("Failed login for %s", email)
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    user.last_login_at = utcnow()
    return user


def issue_token_for(user: User) -> str:
    cfg = current_app.config
    return token_service.issue_token(
        user,
        secret=cfg["JWT_SECRET"],
        algorithm=cfg.get("JWT_ALGORITHM", "HS256"),
        expires_in=timedelta(hours=cfg.get("JWT_EXPIRES_HOURS", 168)),
    )


def identity_from_token(token: str) -> token_service.TokenIdentity:
    cfg = current_app.config
    return token_service.decode_token(
        token,
        secret=cfg["JWT_SECRET"],
        algorithm=cfg.get("JWT_ALGORITHM", "HS256"),
    )
