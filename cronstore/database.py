"""
Engine creation, liveness probe and schema provisioning.

Uses SQLAlchemy engines for pooling. Provisioning is idempotent and runs on
every open(), so a cold database needs no manual migration step.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from .config import StoreConfig


@dataclass(frozen=True)
class Tables:
    """Quoted, schema-qualified table names ready for interpolation."""

    jobs: str
    logs: str
    locks: str

    @classmethod
    def from_config(cls, config: StoreConfig, dialect) -> "Tables":
        return cls(
            jobs=dialect.qualify(config.schema, config.jobs_table),
            logs=dialect.qualify(config.schema, config.logs_table),
            locks=dialect.qualify(config.schema, config.locks_table),
        )


def create_pool(url: str, connect_args: Optional[Dict[str, Any]] = None, **options) -> Engine:
    """
    Create a pooled engine.

    Args:
        url: SQLAlchemy database URL
        connect_args: Extra keyword arguments for the DBAPI connect() call
        **options: Pool options passed to create_engine (pool_size, pool_timeout, ...)

    Returns:
        SQLAlchemy Engine
    """
    return create_engine(
        url,
        future=True,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args or {},
        **options,
    )


def ping(engine: Engine) -> None:
    """Round-trip a trivial query; raises if the database is unreachable."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1")).scalar()


def ensure_schema(engine: Engine, dialect, config: StoreConfig) -> None:
    """
    Create the schema, tables and index if they do not exist.

    All statements run in one transaction. Safe to call repeatedly and from
    several processes at once. A failure raises and leaves nothing to repair;
    the next call re-runs the same statements.

    Args:
        engine: Engine to provision through
        dialect: SQL dialect of the engine
        config: Store configuration (schema and table names)
    """
    tables = Tables.from_config(config, dialect)

    with engine.begin() as conn:
        dialect.provision_guard(conn, config.schema)

        create_schema = dialect.create_schema(config.schema)
        if create_schema:
            conn.execute(text(create_schema))

        conn.execute(text(dialect.create_jobs_table(tables.jobs)))
        conn.execute(text(dialect.create_logs_table(tables.logs)))
        conn.execute(text(dialect.create_logs_index(config.logs_index, tables.logs)))
        conn.execute(text(dialect.create_locks_table(tables.locks)))
