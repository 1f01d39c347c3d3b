import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from academy.core.config import settings
from academy.core.exceptions import StoreTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# pool_pre_ping: check connection is alive before use (avoids "connection is closed" errors
# when DB or network closed idle connections).
# pool_recycle: discard connections after this many seconds to avoid stale connections.
engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    pool_pre_ping=True,
    pool_recycle=300,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def run_bounded(
    db: AsyncSession,
    operation: str,
    work: Awaitable[T],
    timeout: Optional[float] = None,
) -> T:
    """Await `work` for at most `timeout` seconds (settings default).

    On expiry the session is rolled back and StoreTimeout raised; the caller must
    re-read state instead of assuming anything was committed.
    """
    if timeout is None:
        timeout = settings.store_timeout_seconds
    try:
        return await asyncio.wait_for(work, timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs, rolling back", operation, timeout)
        await db.rollback()
        raise StoreTimeout(operation, timeout)
