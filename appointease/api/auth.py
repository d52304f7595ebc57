"""Bearer-token authentication for the owner-facing endpoints.

The Google OAuth callback (outside this service) stores
``auth:<token> -> <user uuid>`` in Redis; this dependency resolves it.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from appointease.db.engine import redis_client

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

AUTH_KEY_PREFIX = "auth:"


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
) -> uuid.UUID:
    """FastAPI dependency — the authenticated user's id, or 401."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    raw = await redis_client.get(f"{AUTH_KEY_PREFIX}{credentials.credentials}")
    if not raw:
        raise _unauthorized()

    try:
        return uuid.UUID(raw)
    except ValueError:
        logger.warning("Malformed user id stored for auth token")
        raise _unauthorized() from None
