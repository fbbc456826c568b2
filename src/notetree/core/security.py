"""
Authentication Dependency

Resolves the authenticated user id from an HS256 JWT carried either in the
``access_token`` cookie (browser clients) or an ``Authorization: Bearer``
header. Token issuance lives elsewhere; this module only verifies.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

import jwt
from fastapi import Cookie, Header

from notetree.core.config import settings
from notetree.core.errors import AuthenticationError

logger = logging.getLogger(__name__)


def decode_access_token(token: str) -> str:
    """
    Validate ``token`` and return its user id.

    The id is read from the ``user_id`` claim, falling back to ``sub``.

    Raises:
        AuthenticationError: Expired, malformed or wrongly signed token, or a
            token without a user id.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Unauthorized - access token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected access token: %s", exc)
        raise AuthenticationError("Unauthorized - invalid access token") from exc

    user_id = payload.get("user_id") or payload.get("sub")
    if not user_id:
        raise AuthenticationError("Unauthorized - token has no user id")
    return str(user_id)


def get_current_user(
    access_token: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header(alias="Authorization")] = None,
) -> str:
    """FastAPI dependency returning the caller's user id."""
    token = access_token
    if not token and authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            token = credentials.strip()
    if not token:
        raise AuthenticationError("Unauthorized - no access token")
    return decode_access_token(token)


__all__ = ["decode_access_token", "get_current_user"]
