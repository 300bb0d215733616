"""
Database session management for the Library Catalog server.

All serialization between concurrent borrows and returns is delegated to the
store, so this module is where the locking contract is wired into the
engine:

1. PostgreSQL: the ledger issues ``SELECT ... FOR UPDATE``; every
   transaction sets ``lock_timeout`` so a blocked caller gives up in time.
2. SQLite: ``FOR UPDATE`` is not supported, so every write transaction
   starts with ``BEGIN IMMEDIATE`` and a ``busy_timeout``. The database-wide
   write lock is held until commit or rollback, which is a superset of the
   row lock the lending engine needs.

Sessions are short-lived and always used through a context manager.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .errors import RepositoryException, TransactionError
from .schema import Base

logger = logging.getLogger(__name__)

# Connection execution options read by the "begin" listeners below
LOCK_TIMEOUT_OPTION = "lock_timeout"
READ_ONLY_OPTION = "read_only"


class DatabaseManager:
    """
    Manages database connections and sessions.

    This class provides:
    - Lazily created engine and session factory
    - ``transaction()`` for lock-holding units of work with a deadline
    - ``session_scope()`` / ``read_scope()`` for ordinary and read-only work
    - Database initialization and health checks
    """

    def __init__(self, database_url: str | None = None, lock_timeout: float | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses the configured store.
            lock_timeout: Default seconds to wait for a lock. If None, uses configuration.
        """
        if database_url is None or lock_timeout is None:
            config = get_config()
            if database_url is None:
                database_url = config.get_database_url()
                logger.info("Using database from configuration: %s", make_url(database_url))
            if lock_timeout is None:
                lock_timeout = config.lock_timeout

        self.database_url = database_url
        self.lock_timeout = lock_timeout
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def dialect_name(self) -> str:
        return make_url(self.database_url).get_backend_name()

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        SQLite engines get a fresh connection per checkout (except in-memory
        databases, which must share one), foreign keys enabled and
        ``BEGIN IMMEDIATE`` transactions. Server databases get a sized pool
        and a per-transaction lock timeout.
        """
        if self._engine is None:
            if self.dialect_name == "sqlite":
                self._engine = self._create_sqlite_engine()
            else:
                config = get_config()
                self._engine = create_engine(
                    self.database_url,
                    pool_size=config.pool_size,
                    max_overflow=config.max_overflow,
                    pool_pre_ping=True,
                    echo=False,
                )
                if self.dialect_name == "postgresql":
                    self._install_postgres_lock_timeout(self._engine)

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    def _create_sqlite_engine(self) -> Engine:
        url = make_url(self.database_url)
        kwargs: dict = {}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(
            self.database_url,
            connect_args={"check_same_thread": False, "timeout": self.lock_timeout},
            echo=False,
            **kwargs,
        )
        default_timeout = self.lock_timeout

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
            # The driver must not open transactions itself; "begin" below does.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_sqlite_transaction(conn):
            options = conn.get_execution_options()
            timeout = options.get(LOCK_TIMEOUT_OPTION, default_timeout)
            conn.exec_driver_sql(f"PRAGMA busy_timeout = {int(timeout * 1000)}")
            if options.get(READ_ONLY_OPTION):
                conn.exec_driver_sql("BEGIN DEFERRED")
            else:
                conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    def _install_postgres_lock_timeout(self, engine: Engine) -> None:
        default_timeout = self.lock_timeout

        @event.listens_for(engine, "begin")
        def set_lock_timeout(conn):
            timeout = conn.get_execution_options().get(LOCK_TIMEOUT_OPTION, default_timeout)
            conn.exec_driver_sql(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'")

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """
        Create a new database session.

        Sessions should be used with context managers or properly closed
        to prevent connection leaks.
        """
        return self.session_factory()

    @contextmanager
    def transaction(self, lock_timeout: float | None = None) -> Generator[Session, None, None]:
        """
        Run one all-or-nothing unit of work holding row locks.

        The transaction begins immediately, so on SQLite the write lock is
        acquired here (waiting at most ``lock_timeout`` seconds). On any
        exception the transaction is rolled back; store failures, including
        the commit itself, surface as ``TransactionError`` while domain
        errors raised by the caller pass through unchanged.

        Args:
            lock_timeout: Seconds to wait for a conflicting lock. Defaults to
                the manager's configured timeout.

        Yields:
            Session bound to an open transaction
        """
        timeout = self.lock_timeout if lock_timeout is None else lock_timeout
        session = self.create_session()
        try:
            session.connection(execution_options={LOCK_TIMEOUT_OPTION: timeout})
            yield session
            session.commit()
            logger.debug("Transaction committed")
        except SQLAlchemyError as e:
            logger.warning("Transaction failed, rolling back: %s", e)
            session.rollback()
            raise TransactionError(f"Transaction failed: {e!s}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            member = session.get(Member, member_id)
        # Session is automatically committed or rolled back
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except RepositoryException as e:
            logger.info("Rolling back: %s", e)
            session.rollback()
            raise
        except Exception:
            logger.exception("Database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def read_scope(self) -> Generator[Session, None, None]:
        """Provide a session for point-in-time reads that takes no write lock."""
        session = self.create_session()
        try:
            session.connection(execution_options={READ_ONLY_OPTION: True})
            yield session
        finally:
            session.rollback()
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
        """Verify the database connection is working."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine; called when the server shuts down."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose of and forget the global database manager (useful for testing)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def safe_commit(session: Session, operation: str) -> None:
    """
    Commit a session, wrapping store failures.

    Raises:
        TransactionError: If the commit fails
    """
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise TransactionError(f"Database operation '{operation}' failed: {e!s}") from e


def safe_query[T](session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, wrapping store failures.

    Raises:
        TransactionError: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise TransactionError(f"{error_msg}: {e!s}") from e
