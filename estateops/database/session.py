from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from estateops.database.engine import async_session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Yield a database session that commits on success and rolls back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
