"""
Async engine and per-request session dependency.

The request's unit of work commits when the handler returns and rolls back
on any exception, so a rejected operation never leaves half of a state
transition behind. Work that must only see committed data (clearing the
listing cache) is registered with `after_commit` and runs once the commit
has succeeded.
"""

from typing import AsyncGenerator, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings

settings = get_settings()

AFTER_COMMIT_KEY = "after_commit"


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def after_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """Run `callback` after the session's next successful commit."""
    session.info.setdefault(AFTER_COMMIT_KEY, []).append(callback)


async def commit(session: AsyncSession) -> None:
    await session.commit()
    for callback in session.info.pop(AFTER_COMMIT_KEY, []):
        await callback()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            session.info.pop(AFTER_COMMIT_KEY, None)
            await session.rollback()
            raise
