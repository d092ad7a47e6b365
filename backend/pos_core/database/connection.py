"""
Database connection management with a synchronous SQLAlchemy engine.

Every core operation runs inside one unit of work: a single Session that
all repositories of that operation share. The session commits when the
block finishes and rolls back on any exception, so an operation is either
fully applied or not applied at all.
"""

from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import Engine, create_engine as sa_create_engine, text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from pos_core.core.config import get_settings
from pos_core.core.exceptions import InternalError, PosCoreError
from pos_core.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def create_engine() -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    Returns:
        Configured SQLAlchemy engine
    """
    settings = get_settings()

    if settings.is_sqlite:
        engine = sa_create_engine(
            settings.database_url,
            echo=settings.debug,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        pool_kwargs = (
            {"poolclass": NullPool}
            if settings.is_test
            else {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
            }
        )
        engine = sa_create_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={
                "application_name": settings.app_name,
                "options": f"-c lock_timeout={settings.db_lock_timeout_ms}",
            },
            **pool_kwargs,
        )

    logger.info(
        "Database engine created",
        dialect=engine.dialect.name,
        pool_size=settings.db_pool_size,
        environment=settings.environment,
    )

    return engine


def get_engine() -> Engine:
    """
    Get or create the global database engine.

    Raises:
        RuntimeError: If engine initialization fails
    """
    global _engine

    if _engine is None:
        try:
            _engine = create_engine()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to create database engine",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RuntimeError(f"Database engine initialization failed: {e}") from e

    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the global session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database session factory created")

    return _session_factory


@contextmanager
def unit_of_work() -> Generator[Session, None, None]:
    """
    Open a session for one core operation.

    Yields:
        Session shared by every repository taking part in the operation
    """
    session = get_session_factory()()

    try:
        logger.debug("Database session created")
        yield session
        session.commit()
        logger.debug("Database session committed")
    except Exception as e:
        session.rollback()
        logger.warning(
            "Database session rolled back",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        session.close()


@contextmanager
def transaction(session: Session, operation: str, **context: Any) -> Generator[Session, None, None]:
    """
    Run one core operation atomically on a caller-provided session.

    Commits when the block completes. Domain errors roll back and propagate
    unchanged; storage errors roll back and surface as InternalError.

    Args:
        session: Unit-of-work session shared by the operation's repositories
        operation: Operation name for logs
        **context: Identifiers added to failure logs

    Raises:
        InternalError: If the store fails while the block runs or on commit
    """
    try:
        yield session
        session.commit()
    except PosCoreError as e:
        session.rollback()
        logger.warning(
            "Operation rejected",
            operation=operation,
            reason=e.message,
            error_type=type(e).__name__,
            **context,
        )
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "Operation failed in storage",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
            **context,
        )
        raise InternalError(operation=operation, **context) from e
    except Exception:
        session.rollback()
        raise


def check_database_health() -> bool:
    """
    Check database connectivity.

    Returns:
        True if a trivial query succeeds, False otherwise
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database health check passed")
        return True
    except (OperationalError, DBAPIError) as e:
        logger.warning("Database health check failed", error=str(e))
        return False


def close_database_connections() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        logger.info("Database connections closed and engine disposed")
    _engine = None
    _session_factory = None
