"""
Database connection management for the registry.

Wraps a SQLAlchemy engine and session factory. Every registry mutation runs
in ``DatabaseManager.transaction()``, which commits on success, rolls back on
any error, and turns driver timeouts, transient failures and commit-time
constraint violations into domain exceptions with a bounded wait.

The in-memory SQLite engine shares one DBAPI connection between threads, so
callers must serialize every transaction on it, reads included. The manager
reports this through ``shared_connection``.
"""

from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .domain.exceptions import (
    StoreConflictException,
    StoreTimeoutException,
    StoreUnavailableException,
)
from .logging_config import get_logger
from .models import Base

logger = get_logger(__name__)


def get_connect_args(db_url: str, timeout_seconds: float) -> dict:
    """
    Get database-specific connection arguments.

    Args:
        db_url: Database connection URL
        timeout_seconds: Bound on lock waits and statements

    Returns:
        Connection arguments dict
    """
    if db_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout_seconds}
    if db_url.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }
    return {}


IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _is_timeout(error: OperationalError) -> bool:
    message = str(error).lower()
    return "locked" in message or "timeout" in message or "canceling statement" in message


class DatabaseManager:
    """
    Owns the engine and session factory for one database.

    Attributes:
        engine: SQLAlchemy engine, None until ``connect``
        shared_connection: True when all sessions share one connection
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        pool_timeout: Optional[int] = None,
    ) -> None:
        self.database_url = database_url or settings.DATABASE_URL
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.STORE_TIMEOUT_SECONDS
        )
        self.pool_timeout = pool_timeout if pool_timeout is not None else settings.DATABASE_POOL_TIMEOUT
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self.shared_connection = self.database_url in IN_MEMORY_URLS

    def connect(self) -> None:
        """Create the engine and session factory."""
        if self.engine is not None:
            return

        connect_args = get_connect_args(self.database_url, self.timeout_seconds)
        if self.shared_connection:
            # One shared connection so every session sees the same in-memory database
            self.engine = create_engine(
                self.database_url, connect_args=connect_args, poolclass=StaticPool
            )
        elif self.database_url.startswith("sqlite"):
            self.engine = create_engine(self.database_url, connect_args=connect_args)
        else:
            self.engine = create_engine(
                self.database_url,
                connect_args=connect_args,
                pool_pre_ping=True,
                pool_timeout=self.pool_timeout,
            )
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        logger.info("Database engine created", url=self.database_url.split("@")[-1])

    def init_db(self) -> None:
        """Create all tables if they do not exist."""
        self.connect()
        Base.metadata.create_all(bind=self.engine, checkfirst=True)
        logger.info("Database tables initialized")

    def disconnect(self) -> None:
        """Dispose of the engine."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    def new_session(self) -> Session:
        self.connect()
        return self._session_factory()

    @contextmanager
    def transaction(self, operation: str) -> Iterator[Session]:
        """
        Run a unit of work atomically.

        Args:
            operation: Name used in logs and timeout errors

        Raises:
            StoreTimeoutException: If the store did not answer in time
            StoreUnavailableException: If the store failed transiently
            StoreConflictException: If a uniqueness constraint failed unhandled,
                typically at commit after a concurrent write
        """
        session = self.new_session()
        try:
            yield session
            session.commit()
        except PoolTimeoutError as e:
            session.rollback()
            raise StoreTimeoutException(operation, self.timeout_seconds) from e
        except IntegrityError as e:
            session.rollback()
            logger.warning("Constraint violation", operation=operation, error=str(e.orig))
            raise StoreConflictException(operation) from e
        except OperationalError as e:
            session.rollback()
            if _is_timeout(e):
                raise StoreTimeoutException(operation, self.timeout_seconds) from e
            logger.error("Store operation failed", operation=operation, error=str(e))
            raise StoreUnavailableException(operation, type(e.orig).__name__) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.transaction("ping") as session:
                return session.execute(text("SELECT 1")).scalar() == 1
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False


# Global database manager instance
db_manager = DatabaseManager()


def get_db() -> Generator[DatabaseManager, None, None]:
    """
    FastAPI dependency for database access.

    Yields:
        DatabaseManager instance
    """
    yield db_manager
