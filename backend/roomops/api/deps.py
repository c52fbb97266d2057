"""Shared API dependencies — single import point for all routers.

Re-exports database session, store and authentication dependencies so that
router modules can import everything they need from one place::

    from roomops.api.deps import get_db, get_current_owner
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roomops.auth.dependencies import (
    get_current_active_user,
    get_current_owner,
    get_current_user,
)
from roomops.database import get_db, get_session_factory
from roomops.services.store import AvailabilityStore, SqlAvailabilityStore


def get_availability_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AvailabilityStore:
    """Provide the occupancy store the availability engine reads from."""
    return SqlAvailabilityStore(session_factory)


__all__ = [
    "get_db",
    "get_session_factory",
    "get_availability_store",
    "get_current_user",
    "get_current_active_user",
    "get_current_owner",
]
