from collections.abc import AsyncGenerator
from typing import Any, Optional

from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import query_settings
from .logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def init_db(
    database_url: str | None = None,
    *,
    echo: bool | None = None,
    **engine_kwargs: Any,
) -> AsyncEngine:
    """
    Initialize the asynchronous SQLAlchemy engine and session factory.

    Args:
        database_url: The connection URL. Falls back to ``DATABASE_URL``.
        echo: If True, SQLAlchemy will log all emitted SQL. Falls back to
            ``DB_ECHO``.
        **engine_kwargs: Additional keyword arguments passed to
            `create_async_engine`.

    Example:
        >>> init_db("sqlite+aiosqlite:///db.sqlite3")
    """
    global _engine, _session_factory

    database_url = database_url or query_settings.DATABASE_URL
    if not database_url:
        msg = "No database URL given and DATABASE_URL is not set."
        raise RuntimeError(msg)

    # Normalize PostgreSQL async driver
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    is_sqlite = database_url.startswith("sqlite")

    options: dict[str, Any] = {
        "echo": query_settings.DB_ECHO if echo is None else echo,
        **engine_kwargs,
    }

    if is_sqlite:
        # SQLite does not support pooling options
        options.pop("pool_size", None)
        options.pop("max_overflow", None)
        options.pop("pool_pre_ping", None)
    else:
        options.setdefault("pool_size", query_settings.DB_POOL_SIZE)
        options.setdefault("max_overflow", query_settings.DB_MAX_OVERFLOW)
        options.setdefault("pool_pre_ping", True)

    _engine = create_async_engine(database_url, **options)
    _session_factory = async_sessionmaker(
        bind=_engine,
        expire_on_commit=False,
        autoflush=False,
    )
    logger.debug("Database engine initialized for %s", _engine.url.drivername)
    return _engine


async def close_db() -> None:
    """
    Dispose of the database engine and clean up resources.
    """
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def _require_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Async generator that yields a database session.
    Suitable for use as a FastAPI dependency.

    Example:
        >>> async for db in get_db():
        ...     page = await users.builder().paginate(db)
    """
    factory = _require_session_factory()
    async with factory() as session:
        yield session


def engine_of(db: AsyncSession) -> AsyncEngine:
    """
    Return the engine behind a session, so side queries can use their own
    connection instead of the session's.
    """
    bind = db.bind
    if isinstance(bind, AsyncConnection):
        return bind.engine
    if isinstance(bind, AsyncEngine):
        return bind
    msg = "Session is not bound to an AsyncEngine or AsyncConnection."
    raise RuntimeError(msg)


def holds_transaction(db: AsyncSession) -> bool:
    """
    Whether ``db`` carries state another connection cannot see.

    True when the session has an open transaction (flushed but uncommitted
    rows) or is bound to a caller's connection, which may itself sit inside
    an outer transaction. Queries that must agree with the session's view
    of the data have to run on the session in that case.
    """
    return db.in_transaction() or isinstance(db.bind, AsyncConnection)
