"""
Database session management for the Campus Library reservation service.

The ``DatabaseManager`` owns the engine and session factory. Services open one
``session_scope()`` per operation; the scope is the transaction boundary:

- begin: a fresh session is created (autocommit off)
- commit: the block finished without raising
- abort: anything raised inside the block rolls the session back

Nothing written inside a scope is visible to other sessions until commit.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import TransactionFailedError
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Seconds a SQLite writer waits for another transaction to release its lock
SQLITE_BUSY_TIMEOUT = 30


def _is_sqlite_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in database_url


def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _disable_pysqlite_begin(dbapi_connection, connection_record):  # noqa: ARG001
    # pysqlite would otherwise emit its own deferred BEGIN before DML
    dbapi_connection.isolation_level = None


def _begin_immediate(conn):
    conn.exec_driver_sql("BEGIN IMMEDIATE")


class DatabaseManager:
    """
    Manages database connections and sessions.

    Holds no state besides the engine and the session factory, both created
    lazily on first use.
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses the configured one.
        """
        if database_url is None:
            config = get_config()
            if config.database_url is None:
                config.database_path.parent.mkdir(exist_ok=True, parents=True)
                logger.info("Using SQLite database at: %s", config.database_path.absolute())
            database_url = config.get_database_url()

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if _is_sqlite_memory(self.database_url):
                # Single shared connection; an in-memory database only lives
                # as long as its connection. Single-threaded use only.
                self._engine = create_engine(
                    self.database_url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False,
                )
                event.listen(self._engine, "connect", _enable_foreign_keys)
            elif self.database_url.startswith("sqlite"):
                # One connection per session. Every transaction starts with
                # BEGIN IMMEDIATE, so a second writer waits for the first to
                # commit instead of reading its uncommitted rows.
                self._engine = create_engine(
                    self.database_url,
                    connect_args={
                        "check_same_thread": False,
                        "timeout": SQLITE_BUSY_TIMEOUT,
                    },
                    echo=False,
                )
                event.listen(self._engine, "connect", _enable_foreign_keys)
                event.listen(self._engine, "connect", _disable_pysqlite_begin)
                event.listen(self._engine, "begin", _begin_immediate)
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Create a new database session. Callers must close it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            session.execute(update(Reservation).where(...).values(...))
        # committed here, or rolled back if the block raised
        ```

        Yields:
            Database session

        Raises:
            Whatever the block raised, after rolling back
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.debug("Rolling back database transaction")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Initialize the database schema.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine. Called on server shutdown."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the process-wide database manager.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose and forget the process-wide manager (useful for testing)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a read with uniform error handling.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Message reported to the caller if the query fails

    Raises:
        TransactionFailedError: If the query fails; the cause is only logged
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed: %s", error_msg)
        raise TransactionFailedError(error_msg) from e
