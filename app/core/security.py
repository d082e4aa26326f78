"""Password hashing and access token helpers.

Passwords are hashed with passlib's ``pbkdf2_sha256`` (no native backend
required). Access tokens are JWTs carrying ``sub`` (user id), ``iat`` and
``exp``; HMAC algorithms use the configured secret, asymmetric algorithms read
PEM keys from disk.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

import jwt
from passlib.context import CryptContext

from app.core.config import JWTSettings, settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


@lru_cache(maxsize=8)
def _read_key(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _signing_key(jwt_settings: JWTSettings) -> str:
    if jwt_settings.algorithm.upper().startswith("HS"):
        return jwt_settings.secret_key
    if not jwt_settings.private_key_path:
        raise ValueError(f"JWT_PRIVATE_KEY_PATH is required for {jwt_settings.algorithm}")
    return _read_key(jwt_settings.private_key_path)


def _verification_key(jwt_settings: JWTSettings) -> str:
    if jwt_settings.algorithm.upper().startswith("HS"):
        return jwt_settings.secret_key
    if not jwt_settings.public_key_path:
        raise ValueError(f"JWT_PUBLIC_KEY_PATH is required for {jwt_settings.algorithm}")
    return _read_key(jwt_settings.public_key_path)


def create_access_token(
    subject: str,
    *,
    jwt_settings: JWTSettings | None = None,
    now: datetime | None = None,
) -> str:
    """Sign an access token for ``subject``.

    Args:
        subject: User id placed in the ``sub`` claim.
        jwt_settings: Signing settings; defaults to the global settings.
        now: Issue time; defaults to the current UTC time.

    Returns:
        Encoded JWT string.
    """
    cfg = jwt_settings or settings.jwt
    issued_at = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": subject,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=cfg.expires_minutes),
    }
    return jwt.encode(claims, _signing_key(cfg), algorithm=cfg.algorithm)


def decode_access_token(token: str, *, jwt_settings: JWTSettings | None = None) -> str:
    """Verify ``token`` and return its subject.

    Raises:
        AuthenticationAppError: If the token is expired, malformed, signed
            with another key, or has no subject.
    """
    cfg = jwt_settings or settings.jwt
    try:
        payload = jwt.decode(
            token,
            _verification_key(cfg),
            algorithms=[cfg.algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationAppError(code="token_expired", message="Access token has expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("auth.invalid_token", extra={"error_type": type(exc).__name__})
        raise AuthenticationAppError(code="invalid_token", message="Invalid access token") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthenticationAppError(code="invalid_token", message="Invalid access token")
    return subject
