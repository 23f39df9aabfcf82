from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from family_budget.config import get_settings
from family_budget.tables import Base

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


def _normalize_asyncpg_url(database_url: str) -> str:
    if database_url.startswith("postgresql+psycopg://"):
        return database_url.replace("postgresql+psycopg://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def _create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(_normalize_asyncpg_url(database_url))


def init_engine(database_url: str) -> None:
    global _engine, _sessionmaker
    _engine = _create_engine(database_url)
    _sessionmaker = async_sessionmaker(
        bind=_engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


def init_from_settings() -> None:
    database_url = get_settings().DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL must be set before the database is used.")
    init_engine(database_url)


async def init_db() -> None:
    if _engine is None:
        init_from_settings()
    async with _engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncIterator[AsyncSession]:
    if _sessionmaker is None:
        init_from_settings()
    session = _sessionmaker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


@asynccontextmanager
async def get_session_scope() -> AsyncIterator[AsyncSession]:
    session_generator = get_session()
    session = await anext(session_generator)
    try:
        yield session
    except BaseException as exc:
        await session_generator.athrow(exc)
        raise
    else:
        try:
            await anext(session_generator)
        except StopAsyncIteration:
            pass


async def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None


def reset_engine() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        _engine.sync_engine.dispose()
    _engine = None
    _sessionmaker = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        init_from_settings()
    return _engine
