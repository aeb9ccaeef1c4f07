"""
Database connection management for the SIGNAL wallet scanner.
Provides connection pooling, session management, and connection utilities.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool
from sqlmodel import Session, SQLModel
from tenacity import retry, stop_after_attempt, wait_exponential

from signal_scanner.config.settings import get_settings

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Database connection manager with connection pooling and retry logic."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database connection manager.

        Args:
            database_url: SQLAlchemy connection string. If None, builds from environment variables.
        """
        self.database_url = database_url or get_settings().get_database_url()
        self.engine: Optional[Engine] = None
        self._setup_engine()

    def _setup_engine(self):
        """Setup SQLAlchemy engine with connection pooling."""
        if self.database_url.startswith("sqlite"):
            # Single shared connection so in-memory databases survive across sessions
            self.engine = create_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False
            )

            # pysqlite defers BEGIN and commits an outermost SAVEPOINT on release;
            # take over transaction control so savepoints nest inside one transaction
            @event.listens_for(self.engine, "connect")
            def disable_pysqlite_transactions(dbapi_conn, connection_record):
                dbapi_conn.isolation_level = None

            @event.listens_for(self.engine, "begin")
            def emit_begin(conn):
                conn.exec_driver_sql("BEGIN")
        else:
            db_config = get_settings().database
            self.engine = create_engine(
                self.database_url,
                poolclass=QueuePool,
                pool_size=db_config.pool_size,
                max_overflow=db_config.max_overflow,
                pool_pre_ping=True,
                pool_recycle=db_config.pool_recycle_hours * 3600,
                echo=False,
                connect_args={
                    "connect_timeout": db_config.connection_timeout_seconds,
                    "application_name": "signal_scanner"
                }
            )

        @event.listens_for(self.engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            logger.debug(f"New database connection established: {connection_record}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True
    )
    def test_connection(self) -> bool:
        """Test database connection with retry logic.

        Returns:
            True if connection successful, raises exception if failed.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("SELECT 1")).fetchone()
                logger.info("Database connection test successful")
                return result[0] == 1
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            raise

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get database session with automatic cleanup.

        Yields:
            SQLModel Session instance
        """
        session = Session(self.engine)
        try:
            yield session
        except Exception as e:
            logger.error(f"Database session error: {e}")
            session.rollback()
            raise
        finally:
            session.close()

    def create_all_tables(self):
        """Create all tables defined in SQLModel metadata."""
        # Register table models with the metadata
        import signal_scanner.models  # noqa: F401

        try:
            SQLModel.metadata.create_all(self.engine)
            logger.info("All database tables created successfully")
        except Exception as e:
            logger.error(f"Failed to create database tables: {e}")
            raise


# Global database connection instance
_db_connection: Optional[DatabaseConnection] = None


def get_database_connection() -> DatabaseConnection:
    """Get the global database connection instance.

    Returns:
        DatabaseConnection instance
    """
    global _db_connection
    if _db_connection is None:
        _db_connection = DatabaseConnection()
    return _db_connection


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Convenience function to get a database session.

    Yields:
        SQLModel Session instance
    """
    db = get_database_connection()
    with db.get_session() as session:
        yield session


def initialize_database():
    """Initialize database connection and create tables."""
    logger.info("Initializing database connection...")

    db = get_database_connection()
    db.test_connection()
    db.create_all_tables()

    logger.info("Database initialization completed")
    return {"status": "success", "message": "All tables created"}


def close_database_connection():
    """Close the global database connection."""
    global _db_connection
    if _db_connection and _db_connection.engine:
        _db_connection.engine.dispose()
        _db_connection = None
        logger.info("Database connection closed")
