# 📄 File: app/shared/infrastructure/database/connection.py
#
# 🧭 Purpose (Layman Explanation):
# Opens the connection to the database that keeps farmers' accounts, farms, crops and community
# posts, so nothing is lost when the server restarts.
#
# 🧪 Purpose (Technical Summary):
# Builds the async SQLAlchemy engine from settings (PostgreSQL via asyncpg in production, SQLite via
# aiosqlite for local development) with connection pooling, and runs the database health check.
#
# 🔗 Dependencies:
# - sqlalchemy (async engine)
# - asyncpg / aiosqlite (async drivers, chosen by DATABASE_URL)
# - app/shared/config/settings.py (database configuration)
#
# 🔄 Connected Modules / Calls From:
# - app/shared/infrastructure/database/sql_store.py (document persistence)
# - app/api/v1/health.py (database health monitoring)

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.shared.config.settings import Settings
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

HEALTH_CHECK_QUERY = text("SELECT 1")


def create_database_engine(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for ``settings.DATABASE_URL``.

    Pool sizing only applies to server databases; SQLite picks its own pool.
    """
    url = make_url(settings.DATABASE_URL)
    options: Dict[str, Any] = {
        "echo": settings.DEBUG,
        "pool_pre_ping": True,  # Validate connections before use
    }
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_recycle=3600,
            pool_timeout=30,
        )

    logger.info("Creating database engine", backend=url.get_backend_name(), database=url.database)
    return create_async_engine(url, **options)


async def check_database(engine: AsyncEngine) -> Dict[str, Any]:
    """
    Perform database health check and return structured status.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(HEALTH_CHECK_QUERY)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": type(e).__name__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return {
        "status": "healthy",
        "backend": engine.url.get_backend_name(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
