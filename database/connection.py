"""
Database connection management for BizDesk.
Handles SQLAlchemy engine creation, session management, and connection verification.
"""

import os
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

from services.exceptions import BusinessError, PersistenceError

logger = logging.getLogger(__name__)

# Get DATABASE_URL from environment
DATABASE_URL = os.environ.get('DATABASE_URL')

# Handle Render's postgres:// vs postgresql:// URL format
if DATABASE_URL and DATABASE_URL.startswith('postgres://'):
    DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

# SQLAlchemy Base for model declarations
Base = declarative_base()

# Engine and SessionLocal will be initialized when needed
engine = None
SessionLocal = None


def _enable_sqlite_savepoints(sqlite_engine):
    """
    Let SQLAlchemy issue BEGIN itself instead of pysqlite, so SAVEPOINTs
    (Session.begin_nested) roll back correctly on SQLite.
    """
    @event.listens_for(sqlite_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


def _build_engine(url):
    """Create an engine with pooling suited to the backend."""
    if url.startswith('sqlite'):
        # In-memory SQLite must share one connection across threads
        if url in ('sqlite://', 'sqlite:///:memory:'):
            return _enable_sqlite_savepoints(create_engine(
                url,
                connect_args={'check_same_thread': False},
                poolclass=StaticPool,
            ))
        return _enable_sqlite_savepoints(
            create_engine(url, connect_args={'check_same_thread': False})
        )

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=300,    # Recycle connections after 5 minutes
        echo=False
    )


def configure_engine(url):
    """
    (Re)bind the module-level engine and session factory to a database URL.
    Called by the app factory and by the test fixtures.
    """
    global engine, SessionLocal, DATABASE_URL

    if engine is not None:
        engine.dispose()

    DATABASE_URL = url
    try:
        engine = _build_engine(url)
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise RuntimeError(f"Failed to connect to database: {e}")

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    logger.info(f"Database engine configured ({engine.dialect.name})")
    return engine


def get_engine():
    """Get or create the SQLAlchemy engine."""
    if engine is not None:
        return engine

    if not DATABASE_URL:
        logger.error("DATABASE_URL environment variable is not set!")
        raise RuntimeError(
            "DATABASE_URL not configured. Please set the DATABASE_URL environment variable."
        )

    return configure_engine(DATABASE_URL)


def get_session_factory():
    """Get or create the session factory."""
    if SessionLocal is None:
        get_engine()
    return SessionLocal


def get_db():
    """
    Generator dependency yielding a database session.
    Ensures it's closed after use.
    """
    session_factory = get_session_factory()
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session():
    """
    Context manager for getting a database session.
    Commits when the block succeeds and rolls back on any exception, so a
    block is one transaction. Driver errors surface as PersistenceError.

    Example:
        with get_db_session() as db:
            customers = db.query(Customer).all()
    """
    session_factory = get_session_factory()
    db = session_factory()
    try:
        yield db
        db.commit()
    except BusinessError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error, transaction rolled back: {e}")
        raise PersistenceError("Falha ao acessar o banco de dados") from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection():
    """
    Verify that the database connection is working.
    Returns True if connection is successful, raises exception otherwise.
    """
    try:
        eng = get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        logger.debug("Database connection verified successfully")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Cannot connect to database: {e}")


def init_db():
    """
    Initialize the database by creating all tables.
    This should be called at application startup after migrations.
    """
    # Import models to ensure they're registered with Base
    from database import models  # noqa: F401

    eng = get_engine()
    Base.metadata.create_all(bind=eng)
    logger.info("Database tables created/verified")


def drop_db():
    """Drop every table. Used by the test fixtures."""
    from database import models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())


def is_db_configured():
    """Check if DATABASE_URL is configured (without failing)."""
    return bool(DATABASE_URL)
