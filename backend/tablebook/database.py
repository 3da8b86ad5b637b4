from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    # READ COMMITTED: the overlap check after taking a booking lock must see rows
    # committed since the request's first read, not an older snapshot.
    return create_async_engine(
        settings.database_url,
        echo=settings.echo_sql,
        isolation_level="READ COMMITTED",
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
