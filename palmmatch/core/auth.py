"""
Caller identity for palmmatch routes.

Authentication itself happens upstream; the gateway forwards the caller's
identity in the X-User-Id header. Operator routes take X-Admin-Key instead.
"""
import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from palmmatch.core.config import settings
from palmmatch.core.logging import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="Caller identity forwarded by the gateway"),
) -> str:
    """
    Extract current user ID from the X-User-Id header.

    Raises:
        HTTPException 401: Missing identity
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id


async def require_admin_key(
    x_admin_key: Optional[str] = Header(None, description="Operator key for maintenance routes"),
) -> str:
    """
    Gate operator routes (code sweep and deactivation) on settings.ADMIN_KEY.

    Raises:
        HTTPException 403: key unset, missing or wrong
    """
    admin_key = settings.ADMIN_KEY
    if not admin_key or not x_admin_key or not secrets.compare_digest(x_admin_key, admin_key):
        logger.warning("[auth] rejected admin key attempt")
        raise HTTPException(status_code=403, detail="Invalid or missing X-Admin-Key header")
    return x_admin_key
