"""FastAPI dependencies for database sessions, identity lookup, and rate limiting."""

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_async_session
from .rate_limit import booking_create_limiter, mutation_limiter
from ..services.identity import IdentityResolver


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


def get_identity_resolver() -> IdentityResolver:
    """Identity resolver configured from settings."""
    return IdentityResolver()


DatabaseSession = Depends(get_db)
IdentityProvider = Depends(get_identity_resolver)
BookingCreateRateLimit = Depends(booking_create_limiter)
MutationRateLimit = Depends(mutation_limiter)
