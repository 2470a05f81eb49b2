"""
PlantScan Backend - Database Handle
=====================================

What:  Async SQLAlchemy engine + session factory wrapped in a `Database` value,
       plus the per-request session dependency.
How:   The application lifespan constructs one Database at startup, stores it
       on app.state and disposes it at shutdown. Nothing in this module opens
       a connection at import time.
Who:   main.py (lifecycle), get_db_session (per request), Alembic (Base).

Backends:
    sqlite+aiosqlite:///./PlantList.db          file-based, default
    postgresql+asyncpg://user:pw@host/db        hosted; optional TLS

    SQLite URLs get no pool sizing arguments (aiosqlite manages a single
    connection per checkout). TLS applies to asyncpg only and is controlled
    by DATABASE_SSL / DATABASE_SSL_VERIFY.
"""

import logging
import ssl
from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from plantscan.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


def build_connect_args(app_settings: Settings) -> Dict[str, Any]:
    """
    Driver-level connect arguments for the configured URL.

    asyncpg takes an SSLContext through connect_args["ssl"]. With
    verification disabled the context skips both hostname and certificate
    checks.
    """
    url = make_url(app_settings.database_url)
    if url.get_backend_name() != "postgresql" or url.get_driver_name() != "asyncpg":
        return {}
    if not app_settings.database_ssl:
        return {}

    context = ssl.create_default_context()
    if not app_settings.database_ssl_verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return {"ssl": context}


def build_engine(app_settings: Settings) -> AsyncEngine:
    """Create the async engine with pool options appropriate for the backend."""
    engine_kwargs: Dict[str, Any] = {
        "echo": app_settings.log_level == "DEBUG",
        "connect_args": build_connect_args(app_settings),
    }
    if not app_settings.is_sqlite:
        engine_kwargs.update(
            pool_size=app_settings.db_pool_size,
            max_overflow=app_settings.db_max_overflow,
            pool_pre_ping=app_settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(app_settings.database_url, **engine_kwargs)


class Database:
    """
    Explicitly constructed storage client: one engine, one session factory.

    Lifecycle:
        database = Database(settings)   # at process start (lifespan)
        ...                             # sessions handed out per request
        await database.dispose()        # at shutdown
    """

    def __init__(self, app_settings: Settings):
        self.settings = app_settings
        self.engine = build_engine(app_settings)
        # expire_on_commit=False: attribute access after commit must not
        # trigger a lazy reload outside the request's session scope
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info(
            "Database configured: backend=%s",
            make_url(app_settings.database_url).get_backend_name(),
        )

    async def create_all(self) -> None:
        """Create all mapped tables that do not exist yet (tests, local setup)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Run SELECT 1; False if the store is unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The session comes from the Database stored on app.state. Services commit
    explicitly after a successful write; this wrapper commits whatever is
    left on success and rolls back on any error.

    Example usage in a route:
        @router.post("/scan")
        async def scan(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
