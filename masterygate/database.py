"""
Engine and session factories for the learning store.

The application engine is built once at import from settings. Tests and
tools build their own through `create_engine_for` so they get the same
SQLite pragmas as the service.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from masterygate.config import get_settings

SQLITE_BUSY_TIMEOUT_MS = 5000


def _enable_sqlite_pragmas(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        # Attempt appends and progress upserts for one learner arrive in bursts
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.close()


def create_engine_for(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build an async engine for `database_url`.

    SQLite gets one connection per session (NullPool) and WAL mode.
    PostgreSQL gets a small pre-pinged pool.
    """
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )
        _enable_sqlite_pragmas(engine)
        return engine
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


settings = get_settings()
engine = create_engine_for(settings.database_url, echo=settings.debug)
async_session_maker = create_session_maker(engine)


async def create_schema(bind: AsyncEngine) -> None:
    """Create every learning-store table that does not exist yet."""
    # Importing the models package registers every table on Base.metadata
    from masterygate.kernel.models import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    await create_schema(engine)


async def close_db() -> None:
    await engine.dispose()
