"""
Database connection module for QuickForm.

One async engine per process. PostgreSQL (asyncpg) in production; SQLite
(aiosqlite) for tests and local runs, selected by DATABASE_URL.
"""

import os
from pathlib import Path
from typing import AsyncGenerator

from dotenv import load_dotenv
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

# Shell environment wins over .env files
load_dotenv()
_project_env = Path(__file__).resolve().parents[1] / ".env"
if _project_env.exists():
    load_dotenv(dotenv_path=str(_project_env), override=False)

Base = declarative_base()

_ASYNCPG_PREFIXES = ("postgresql://", "postgres://")


def _normalize_asyncpg_url(dsn: str) -> str:
    """Point bare PostgreSQL DSNs at the asyncpg driver."""
    for prefix in _ASYNCPG_PREFIXES:
        if dsn.startswith(prefix):
            return "postgresql+asyncpg://" + dsn[len(prefix):]
    return dsn


def database_url() -> str:
    """DATABASE_URL if set, else a PostgreSQL URL assembled from POSTGRES_* variables."""
    configured = os.getenv("DATABASE_URL", "").strip()
    if configured:
        return _normalize_asyncpg_url(configured)
    port = os.getenv("POSTGRES_PORT", "5432")
    return URL.create(
        drivername="postgresql+asyncpg",
        username=os.getenv("POSTGRES_USER", "postgres"),
        password=os.getenv("POSTGRES_PASSWORD", ""),
        host=os.getenv("POSTGRES_HOST", "localhost"),
        port=int(port) if port.isdigit() else None,
        database=os.getenv("POSTGRES_DB", "quickform"),
    ).render_as_string(hide_password=False)


def create_engine_for(url: str) -> AsyncEngine:
    """Async engine for `url`; SQLite gets a single shared connection."""
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(
        url,
        echo=False,
        pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


DATABASE_URL = database_url()
engine = create_engine_for(DATABASE_URL)

async_session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    session = async_session_maker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
