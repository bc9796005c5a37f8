"""
Database engine configuration and session management.

Current: SQLite (async with aiosqlite)
Future: PostgreSQL (switch DATABASE_URL to postgresql+asyncpg://...)
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.core import config


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine; SQLite gets NullPool to avoid cross-task connection reuse."""
    return create_async_engine(
        url,
        poolclass=NullPool if url.startswith("sqlite") else None,
        echo=False,  # Set to True for SQL query logging during development
        future=True,
    )


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(config.SQLALCHEMY_DATABASE_URL)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    Usage in FastAPI routes:
        @router.get("/roles")
        async def list_roles(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Role))
            return result.scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind: AsyncEngine | None = None):
    """
    Create all tables.

    Called on application startup, by the seed script and by the test suite
    (with its own engine).
    """
    from app.core.database.base import Base

    # Import all models to ensure they're registered with SQLAlchemy
    from app.features.roles.models import Role, AuditLog  # noqa: F401
    from app.features.users.models import User  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
