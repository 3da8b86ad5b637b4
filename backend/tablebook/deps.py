from typing import AsyncIterator

from fastapi import Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .domain.repositories import LockRepository
from .infrastructure.locks import RedisLockRepository, SqlAlchemyLockRepository


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        yield session


async def get_lock_repo(request: Request) -> LockRepository:
    settings = get_settings()
    if settings.lock_backend == "redis":
        redis_client = getattr(request.app.state, "redis", None)
        if redis_client is None:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Redis unavailable")
        return RedisLockRepository(redis_client, ttl_seconds=settings.lock_ttl_seconds)
    return SqlAlchemyLockRepository(request.app.state.session_factory, ttl_seconds=settings.lock_ttl_seconds)


async def get_idempotency_key(idempotency_key: str | None = Header(default=None)) -> str:
    if not idempotency_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "validation_error", "message": "Idempotency-Key header is required"},
        )
    return idempotency_key
