"""
Admin access for the event manager and box-office endpoints.

Customer-facing booking needs no account; administrators present a shared key
in the X-Admin-Key header.
"""

import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from comedy_club.core.config import get_settings
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)

admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


async def require_admin(api_key: Optional[str] = Security(admin_key_header)) -> None:
    expected = get_settings().ADMIN_API_KEY
    if not api_key or not secrets.compare_digest(api_key.encode(), expected.encode()):
        logger.warning("admin_auth_failed", key_present=bool(api_key))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )
