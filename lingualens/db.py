from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url

from .backend import SqlTableBackend, TableBackend
from .models import Base
from .settings import get_settings

logger = logging.getLogger(__name__)


# ---- SQLite Optimization ----
def configure_sqlite_engine(engine: Engine) -> None:
    """Configure SQLite pragmas on every new connection"""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")       # ON DELETE CASCADE needs this
            cursor.execute("PRAGMA busy_timeout=30000")
        except Exception as e:
            logger.warning(f"Failed to set SQLite pragmas: {e}")
        finally:
            cursor.close()


# ---- Engine ----
def create_db_engine(url: Optional[str] = None, **kwargs) -> Engine:
    url = make_url(url or get_settings().DATABASE_URL)
    if url.get_backend_name() == "sqlite":
        kwargs.setdefault("connect_args", {"check_same_thread": False, "timeout": 30.0})
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(url, pool_pre_ping=True, echo=False, **kwargs)
    configure_sqlite_engine(engine)
    return engine


# ---- Database Initialization ----
def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet"""
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def check_db_health(engine: Engine) -> bool:
    """Verify database connectivity"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# ---- Dependency Injection ----
def get_backend(request: Request) -> TableBackend:
    """Backend collaborator constructed for this app in create_app()"""
    return request.app.state.backend


def build_backend(engine: Engine) -> SqlTableBackend:
    return SqlTableBackend(engine, Base.metadata)
