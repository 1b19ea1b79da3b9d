from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from config import settings


def _get_engine_kwargs(database_url: str) -> dict:
    """Return dialect-specific engine options for SQLite vs PostgreSQL."""
    kwargs = {"echo": settings.debug}
    if database_url.split(":")[0].lower().startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # an in-memory database lives only as long as its single connection
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
    return kwargs


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # criteria_sheets / favorites rely on ON DELETE CASCADE
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    engine = create_async_engine(database_url, **_get_engine_kwargs(database_url))
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(settings.database_url)

AsyncSessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    pass


async def init_db(bind: AsyncEngine | None = None):
    # models must be imported so their tables are registered on Base.metadata
    import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
