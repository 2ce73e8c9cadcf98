"""
Module: leave_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  This is the single point of database
    connection configuration for the kernel.
Architecture position: Kernel > DB.  May import from db/base.py, config and
    exceptions.  MUST NOT import from services/, selectors/, domain/, or outer
    layers (create_tables imports models to populate the metadata).

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED with explicit row locks
      (SELECT ... FOR UPDATE) and conditional UPDATEs where stronger
      guarantees are required.
    - SQLite opens every transaction with BEGIN IMMEDIATE, so writers are
      serialized and a read-then-write transaction never fails its lock
      upgrade half-way.
    - Every store call is bounded: pool timeout, statement/lock timeout on
      PostgreSQL, busy timeout on SQLite.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory is called
      before init_engine_from_url().
    - StoreUnavailableError (retryable) when a driver-level operational
      error, pool timeout or lost connection occurs inside store_errors()
      or session_scope().
    - StoreIntegrityError when a write inside store_errors() violates a
      foreign key, unique or check constraint.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from leave_kernel.config import KernelSettings
from leave_kernel.exceptions import (
    LeaveKernelError,
    StoreIntegrityError,
    StoreUnavailableError,
)
from leave_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

# Module-level engine and session factory
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _install_sqlite_locking(engine: Engine) -> None:
    """Take over pysqlite's transaction handling and begin IMMEDIATE."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop pysqlite from emitting its own deferred BEGIN.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    store_timeout: int = 15,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Preconditions: database_url is a valid PostgreSQL or SQLite URL.
        A second call overwrites the first.
    Postconditions: Module-level _engine and _SessionFactory are initialized.

    Args:
        database_url: Connection URL (postgresql://... or sqlite:///path).
        echo: If True, log all SQL statements.
        pool_size: Number of connections to keep in the pool.
        max_overflow: Max connections beyond pool_size.
        pool_pre_ping: If True, test connections before use.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.
        store_timeout: Upper bound in seconds for a single statement or
            lock wait.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect == "sqlite":
        in_memory = url.database in (None, "", ":memory:")
        _engine = create_engine(
            url,
            echo=echo,
            poolclass=StaticPool if in_memory else QueuePool,
            connect_args={"timeout": store_timeout, "check_same_thread": False},
            **({} if in_memory else {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
            }),
        )
        _install_sqlite_locking(_engine)
    else:
        timeout_ms = store_timeout * 1000
        _engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
            connect_args={
                "options": (
                    f"-c statement_timeout={timeout_ms} "
                    f"-c lock_timeout={timeout_ms}"
                ),
            },
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": dialect,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "store_timeout": store_timeout,
            "echo": echo,
        },
    )

    return _engine


def init_engine_from_settings(settings: KernelSettings) -> Engine:
    """Initialize logging and the engine from a ``KernelSettings`` snapshot."""
    configure_logging(level=settings.log_level)
    return init_engine_from_url(
        settings.database_url,
        echo=settings.echo_sql,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        store_timeout=settings.store_timeout,
    )


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    return get_session_factory()()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory for creating sessions.

    Useful for multi-threaded scenarios where each thread needs its own session.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def _is_transient(exc: DBAPIError) -> bool:
    return isinstance(exc, OperationalError) or exc.connection_invalidated


@contextmanager
def store_errors(operation: str) -> Generator[None, None, None]:
    """
    Translate driver failures into kernel errors.

    Transient failures become ``StoreUnavailableError`` and constraint
    violations become ``StoreIntegrityError``; neither carries the driver's
    message.  Programming errors propagate unchanged.
    """
    try:
        yield
    except PoolTimeoutError as exc:
        logger.warning(
            "store_pool_timeout", extra={"operation": operation}, exc_info=True,
        )
        raise StoreUnavailableError(operation) from exc
    except IntegrityError as exc:
        logger.warning(
            "store_constraint_violated", extra={"operation": operation}, exc_info=True,
        )
        raise StoreIntegrityError(operation) from exc
    except DBAPIError as exc:
        if not _is_transient(exc):
            raise
        logger.warning(
            "store_unavailable", extra={"operation": operation}, exc_info=True,
        )
        raise StoreUnavailableError(operation) from exc


@contextmanager
def session_scope(
    operation: str = "transaction",
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed and the exception
        is re-raised; transient store failures surface as
        StoreUnavailableError.

    Usage:
        with session_scope("submit") as session:
            session.add(entity)
    """
    session = (factory or get_session_factory())()
    logger.debug("transaction_started", extra={"operation": operation})
    try:
        with store_errors(operation):
            yield session
            session.commit()
        logger.debug("transaction_committed", extra={"operation": operation})
    except Exception as exc:
        session.rollback()
        if isinstance(exc, LeaveKernelError) and not exc.retryable:
            logger.debug(
                "transaction_rolled_back",
                extra={"operation": operation, "error_code": exc.code},
            )
        else:
            logger.warning(
                "transaction_rolled_back",
                extra={"operation": operation},
                exc_info=True,
            )
        raise
    finally:
        session.close()


def create_tables() -> None:
    """
    Create all tables defined in the models.

    Preconditions: Engine must be initialized via init_engine_from_url().
    Postconditions: All tables exist in the database.
    """
    from leave_kernel.db.base import Base
    import leave_kernel.models  # noqa: F401  (populates Base.metadata)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from leave_kernel.db.base import Base
    import leave_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """
    Reset the engine and session factory.

    Useful for test cleanup.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)


def is_postgres() -> bool:
    """Check if the current engine is PostgreSQL."""
    if _engine is None:
        return False
    return _engine.dialect.name == "postgresql"
