"""
core/database.py -- Shared SQLAlchemy engine and schema metadata.

Every table in TeamDesk is declared on the single `metadata` object defined
here, so one create_all() call builds the whole schema. auth/store.py and
ops/store.py both receive the same Engine: ops queries join against the
users table, which requires one database.

The Engine is created by the application lifespan and stored on app.state.
Nothing in this module holds a module-level engine.

Layer rule: core/ is the kernel. No imports from api/, auth/, or ops/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine

logger = logging.getLogger("teamdesk.db")

metadata = MetaData()


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every new SQLite connection.

    PRAGMAs are per-connection in SQLite and are not inherited by new
    connections from the pool.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Build an Engine for db_url. SQLite URLs get thread-sharing and WAL mode."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync routes in a threadpool
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def init_schema(engine: Engine) -> None:
    """Create every table registered on `metadata` that does not exist yet.

    Table modules must be imported before this runs so their Table objects are
    attached to `metadata`. The stores import their own tables, so building
    a store first is enough.
    """
    metadata.create_all(engine)
    logger.info("Schema ready (%d tables)", len(metadata.tables))


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
