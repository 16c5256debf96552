from functools import lru_cache
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
import logging

from config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create the async engine on first use so imports never need a database."""
    settings = get_settings()

    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL environment variable is not set")

    connect_args = {"ssl": "require"} if settings.DATABASE_SSL else {}

    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args=connect_args
    )


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker:
    """Async session factory bound to the shared engine."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


async def get_db():
    """Dependency to get database session"""
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Initialize database connection and verify the sweep tables exist"""
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("PostgreSQL connection successful")

            # importing the models registers their tables on Base.metadata
            from database import summons_models  # noqa: F401

            expected = sorted(Base.metadata.tables)
            tables_query = text("""
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = 'public'
                  AND table_name = ANY(:names)
            """)
            result = await conn.execute(tables_query, {"names": expected})
            tables = [row[0] for row in result.fetchall()]
            logger.info(f"Sweep tables present: {tables}")

            missing = [t for t in expected if t not in tables]
            if missing:
                logger.warning(f"Sweep tables missing, run migrations/create_summons_tables.py: {missing}")

            return True
    except Exception as e:
        logger.error(f"Database initialization error: {e}")
        raise
