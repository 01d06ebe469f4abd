# pwa2apk/core/database.py
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from pwa2apk.core.config import get_database_url


def engine_options(url: str) -> Dict[str, Any]:
    # aiosqlite runs each connection on its own thread; no pooling across them
    if url.startswith("sqlite"):
        return {"poolclass": NullPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 3600}


DATABASE_URL = get_database_url()
engine = create_async_engine(DATABASE_URL, echo=False, **engine_options(DATABASE_URL))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with SessionLocal() as session:
        yield session


async def init_models() -> None:
    """Create the build_configs table (and any future models) if missing."""
    import pwa2apk.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
