"""
Shared FastAPI dependencies
"""

import secrets
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import Database


def get_database(request: Request) -> Database:
    """Database handle created at application startup"""
    return request.app.state.db


async def get_db(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    """Get database session"""
    async with database.session() as session:
        yield session


async def verify_sync_key(
    key: Optional[str] = Query(None, description="Shared sync secret"),
    x_sync_key: Optional[str] = Header(None)
):
    """
    Guard for sync triggers: the shared secret must be given as the `key`
    query parameter or the X-Sync-Key header.
    """
    if not settings.SYNC_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync triggers are disabled (SYNC_SECRET not configured)"
        )

    provided = key or x_sync_key
    if not provided or not secrets.compare_digest(provided, settings.SYNC_SECRET):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid sync key")
