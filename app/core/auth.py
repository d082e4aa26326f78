"""Bearer token authentication.

Endpoints behind ``Depends(get_current_user_id)`` require an
``Authorization: Bearer <jwt>`` header. The verified ``sub`` claim is handed
to the route (and to the by-subject rate limit) as the caller's user id.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import AuthenticationAppError
from app.core.security import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="JWT issued by /v1/users/login")

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def extract_bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    """Return the raw token from parsed credentials.

    Raises:
        AuthenticationAppError: If the header is missing or not a Bearer token.
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationAppError(
            code="missing_token",
            message="Missing bearer token. Provide an Authorization: Bearer header.",
        )
    return credentials.credentials


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> str:
    """FastAPI dependency resolving the authenticated user id.

    Usage:
        @router.get("/self/info")
        def get_profile(user_id: str = Depends(get_current_user_id)):
            ...

    Raises:
        HTTPException: 401 Unauthorized if the token is missing or invalid.
    """
    try:
        token = extract_bearer_token(credentials)
        user_id = decode_access_token(token)
    except AuthenticationAppError as exc:
        logger.warning(
            "auth.rejected",
            extra={
                "reason": exc.code,
                "token_present": credentials is not None,
            },
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers=_UNAUTHORIZED_HEADERS,
        ) from exc

    logger.debug(
        "auth.success",
        extra={"user_hash": hashlib.sha256(user_id.encode()).hexdigest()[:16]},
    )
    return user_id
