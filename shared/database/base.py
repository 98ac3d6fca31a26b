"""Engine, session and declarative base for the chat backend.

- ``Base``: declarative base with a constraint naming convention, so
  alembic revisions get stable constraint names
- ``TimestampMixin``: created_at/updated_at columns
- ``init_db`` / ``get_db`` / ``close_db``: process-wide engine lifecycle
  and the request-scoped session dependency
"""

from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from sqlalchemy import MetaData, TIMESTAMP
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

NAMING_CONVENTION = {
    "pk": "pk_%(table_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ix": "ix_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
}

# Pool settings for the Postgres deployment; SQLite engines use their defaults
POSTGRES_POOL_OPTIONS = {
    "pool_size": 20,
    "max_overflow": 10,
    "pool_recycle": 3600,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    """Adds ``created_at`` (indexed) and ``updated_at`` to a model.

    Both are timezone-aware and filled in Python, with a server default for
    rows inserted outside the ORM.
    """

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Sessions keep loaded attributes after commit and never autoflush."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def init_db(database_url: str, **engine_options) -> None:
    """Create the process-wide engine and session factory.

    Args:
        database_url: async driver URL, ``postgresql+asyncpg://...`` in
            deployments
        **engine_options: overrides forwarded to ``create_async_engine``
    """
    global _engine, _session_factory

    options = {"echo": False, "pool_pre_ping": True}
    if database_url.startswith("postgresql"):
        options.update(POSTGRES_POOL_OPTIONS)
    options.update(engine_options)

    _engine = create_async_engine(database_url, **options)
    _session_factory = make_session_factory(_engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request.

    Commits when the request handler returns and rolls back if it raised.
    """
    if _session_factory is None:
        raise RuntimeError("init_db() must run before sessions are requested")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Dispose of the engine on shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
