# app/db/session.py
"""
Database session management.
Provides database connections for FastAPI and context managers.

Two stores are involved: the service's own tables (movements, auto
messages) and the main backend's instances table, which is read-only here.
Both engines are built once at import and shared by every request.
"""
import logging
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager

from app.core.config import (
    DATABASE_URL, INSTANCE_DATABASE_URL,
    DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_RECYCLE_SECONDS, DB_CONNECT_TIMEOUT_SECONDS,
)

log = logging.getLogger("whatsgroups.database")


# ────────────────────────────────────────────
# SQLAlchemy Engines
# ────────────────────────────────────────────
def build_engine(url: str) -> Engine:
    """Bounded pool with connect/idle timeouts; SQLite (local runs, tests) shares one connection."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_recycle=DB_POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,  # Verify connections before using
        connect_args={"connect_timeout": DB_CONNECT_TIMEOUT_SECONDS},
        echo=False  # Set to True for SQL debugging
    )


engine = build_engine(DATABASE_URL)
instance_engine = engine if INSTANCE_DATABASE_URL == DATABASE_URL else build_engine(INSTANCE_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
InstanceSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=instance_engine)


# ────────────────────────────────────────────
# FastAPI Dependency
# ────────────────────────────────────────────
def get_db() -> Session:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/movements")
        def list_movements(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ────────────────────────────────────────────
# Context Manager
# ────────────────────────────────────────────
@contextmanager
def get_db_session():
    """
    Context manager for database sessions outside a request
    (background dispatches).

    Usage:
        with get_db_session() as db:
            configs = service.get_effective(db, user_id, group_id)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ────────────────────────────────────────────
# Database Utilities
# ────────────────────────────────────────────
def test_db_connection() -> bool:
    """Test database connection"""
    try:
        with get_db_session() as db:
            db.execute(text("SELECT 1"))
        log.info("✅ Database connection successful")
        return True
    except Exception as e:
        log.error(f"❌ Database connection failed: {e}")
        return False


def init_db():
    """
    Initialize database tables.
    Creates the movement and auto message tables; the instances table is
    owned by the main backend and never created here.
    """
    from app.db.base import Base
    try:
        Base.metadata.create_all(bind=engine)
        log.info("✅ Database tables initialized")
    except Exception as e:
        log.error(f"❌ Failed to initialize database: {e}")
        raise
