"""
cronstore: persistence and coordination backend for a distributed job scheduler.

Job registry, append-only execution log and insert-once distributed lock on
PostgreSQL (SQLite for local use and tests).
"""

__version__ = "0.1.0"

from .connection import Connection
from .errors import (
    ConfigurationError,
    CronStoreError,
    DriverError,
    QueryError,
    QueryTimeoutError,
    SerializationError,
    StoreConnectionError,
)
from .registry import DriverRegistry, PostgresDriver, SQLiteDriver, register_default_drivers

__all__ = [
    "__version__",
    "Connection",
    "DriverRegistry",
    "PostgresDriver",
    "SQLiteDriver",
    "register_default_drivers",
    "CronStoreError",
    "StoreConnectionError",
    "SerializationError",
    "QueryError",
    "QueryTimeoutError",
    "ConfigurationError",
    "DriverError",
]
