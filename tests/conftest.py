"""
Pytest configuration and shared fixtures.

Store fixtures run against SQLite in tmp_path. Set CRON_STORE_TEST_DSN to a
PostgreSQL DSN to run the same tests against PostgreSQL as well; each test
then gets its own throwaway schema.
"""

import os
import uuid
from typing import Any, Dict

import pytest
from sqlalchemy import text

from cronstore.dialect import quote_ident
from cronstore.logger import StructuredLogger
from cronstore.registry import DriverRegistry, register_default_drivers

PG_DSN = os.environ.get("CRON_STORE_TEST_DSN", "")


@pytest.fixture
def logger() -> StructuredLogger:
    """Quiet logger with fresh metrics."""
    return StructuredLogger(name="cronstore.test", level="DEBUG")


@pytest.fixture
def registry(logger):
    """Initialized registry with the built-in drivers."""
    reg = DriverRegistry(logger=logger)
    register_default_drivers(reg)
    reg.init()
    yield reg
    reg.teardown()


@pytest.fixture
def sqlite_setting(tmp_path) -> Dict[str, Any]:
    return {"path": str(tmp_path / "cron.db")}


@pytest.fixture(params=["sqlite", "postgres"])
def store(request, registry, sqlite_setting):
    """Open connection on each available backend."""
    if request.param == "sqlite":
        conn = registry.connection("sqlite", sqlite_setting)
        conn.open()
        yield conn
        conn.close()
        return

    if not PG_DSN:
        pytest.skip("CRON_STORE_TEST_DSN not set")

    schema = f"cronstore_test_{uuid.uuid4().hex[:8]}"
    conn = registry.connection("pgsql", {"dsn": PG_DSN, "schema": schema})
    conn.open()
    yield conn
    with conn._engine.begin() as c:
        c.execute(text(f"DROP SCHEMA {quote_ident(schema)} CASCADE"))
    conn.close()


@pytest.fixture
def raw_execute(store):
    """Run a statement directly against the store's database, bypassing cronstore."""
    def _execute(sql: str, params: Dict[str, Any] = None):
        with store._engine.begin() as c:
            return c.execute(text(sql), params or {})
    return _execute


@pytest.fixture
def backup_job() -> Dict[str, Any]:
    """Typical job document."""
    return {
        "schedule": "0 * * * *",
        "disabled": False,
        "payload": {"target": "s3://backups", "retain": 7},
        "tags": ["nightly", "storage"],
    }
