# === backend/app/db/database.py ===

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from fastapi import Request
from typing import AsyncGenerator

Base = declarative_base()

def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    if not database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    return create_async_engine(database_url, echo=echo)

def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def create_db_and_tables(engine: AsyncEngine):
    # register models on Base.metadata
    from app.models import endpoint, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        yield session
