"""
Prisma database client lifecycle.

The client is created on first use rather than at import time, so modules
that only need the dependency (and tests that override it) never require a
generated client.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from prisma import Prisma

logger = logging.getLogger(__name__)

_db: "Prisma | None" = None


def get_client() -> "Prisma":
    """Return the process-wide Prisma client, creating it on first call."""
    global _db
    if _db is None:
        from prisma import Prisma

        _db = Prisma()
    return _db


async def connect_db() -> None:
    """Connect the shared client (application startup)."""
    db = get_client()
    if not db.is_connected():
        await db.connect()
        logger.info("Database connected")


async def disconnect_db() -> None:
    """Disconnect the shared client (application shutdown)."""
    if _db is not None and _db.is_connected():
        await _db.disconnect()
        logger.info("Database disconnected")


async def check_db_health() -> dict[str, Any]:
    """Report whether the shared client is connected and answering queries."""
    if _db is None or not _db.is_connected():
        return {"status": "disconnected", "type": "postgresql"}
    try:
        await _db.query_raw("SELECT 1 as test")
    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "type": "postgresql"}
    return {"status": "healthy", "type": "postgresql"}


async def get_db_client() -> AsyncGenerator["Prisma", None]:
    """FastAPI dependency yielding a connected Prisma client."""
    db = get_client()
    if not db.is_connected():
        await db.connect()
    yield db
