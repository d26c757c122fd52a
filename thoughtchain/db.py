"""
Database initialization and migration helpers.
"""

from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

import thoughtchain.config as config
from thoughtchain.storage_location import (
    StorageLocation,
    default_storage_location,
    secure_database_file,
)

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "migrations")


class DB:
    """Database state holder (avoids global scoping issues)."""

    engine = None
    location: Optional[StorageLocation] = None


def _get_alembic_config(url: str):
    try:
        from alembic.config import Config
    except ImportError as exc:
        raise RuntimeError("Alembic is required for migrations") from exc

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", MIGRATIONS_DIR)
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    return alembic_cfg


def _get_schema_revisions(engine: Engine) -> tuple[Optional[str], Optional[str]]:
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    alembic_cfg = _get_alembic_config(str(engine.url))
    script = ScriptDirectory.from_config(alembic_cfg)
    head_revision = script.get_current_head()
    with engine.connect() as conn:
        context = MigrationContext.configure(conn)
        current_revision = context.get_current_revision()
    return current_revision, head_revision


def _ensure_schema_up_to_date(engine: Engine) -> None:
    from alembic import command

    current_rev, head_rev = _get_schema_revisions(engine)
    if current_rev == head_rev:
        return

    if config.AUTO_MIGRATE_ON_STARTUP:
        alembic_cfg = _get_alembic_config(str(engine.url))
        # Share the engine's connection so in-memory databases see the schema
        with engine.begin() as connection:
            alembic_cfg.attributes["connection"] = connection
            command.upgrade(alembic_cfg, "head")
        new_current, _ = _get_schema_revisions(engine)
        if new_current != head_rev:
            raise RuntimeError("Database migration did not reach expected revision")
    else:
        raise RuntimeError(
            f"Database schema out of date (current={current_rev}, expected={head_rev}). "
            "Set AUTO_MIGRATE_ON_STARTUP=true to upgrade on startup."
        )


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_sqlite_engine(location: StorageLocation) -> Engine:
    if location.in_memory:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            f"sqlite:///{location.path}",
            connect_args={"check_same_thread": False},
        )
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


def init_db(location: Optional[StorageLocation] = None) -> Engine:
    """Initialize the database connection and bring the schema to head."""
    location = location or default_storage_location()

    config.logger.info("Connecting to database...", extra={"path": location.path})
    engine = create_sqlite_engine(location)
    _ensure_schema_up_to_date(engine)
    secure_database_file(location)

    DB.engine = engine
    DB.location = location

    config.logger.info("Database initialized")
    return engine


def create_store(location: Optional[StorageLocation] = None):
    """Initialize the database and wrap it in a ChainStore."""
    from thoughtchain.services.chain_store import ChainStore

    engine = init_db(location)
    return ChainStore(engine, DB.location.path)
