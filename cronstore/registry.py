"""
Driver registry.

Drivers turn a host setting mapping into a Connection. The host owns a
DriverRegistry, registers drivers explicitly at startup, calls init(), and
calls teardown() on shutdown to close every connection it handed out.
Nothing registers itself on import.
"""

import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.engine import Engine, make_url

from .config import StoreConfig
from .connection import Connection
from .database import create_pool
from .dialect import PostgresDialect, SQLiteDialect
from .dsn import parse_dsn, to_sqlalchemy_url
from .errors import ConfigurationError, DriverError
from .logger import StructuredLogger, get_logger
from .schema import redact, validate_setting


class PostgresDriver:
    """PostgreSQL through SQLAlchemy + psycopg2."""

    def __init__(self, dbapi: str = "psycopg2"):
        self.dbapi = dbapi

    def connection(self, setting: Mapping[str, Any], logger: Optional[StructuredLogger] = None) -> Connection:
        config = StoreConfig.from_setting(setting, parse_dsn(setting))
        return Connection(config, PostgresDialect(), self.create_engine, logger=logger)

    def create_engine(self, config: StoreConfig) -> Engine:
        url, connect_args = to_sqlalchemy_url(config.dsn, self.dbapi)
        connect_args["connect_timeout"] = config.connect_timeout
        return create_pool(
            url,
            connect_args=connect_args,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
        )


class SQLiteDriver:
    """SQLite file database, for local development and tests.

    Setting keys: ``path`` (file path) or ``url`` (``sqlite:///...``).
    Defaults to ``cronstore.db`` in the working directory.
    """

    DEFAULT_PATH = "cronstore.db"

    def connection(self, setting: Mapping[str, Any], logger: Optional[StructuredLogger] = None) -> Connection:
        url = setting.get("url")
        if not (isinstance(url, str) and url.startswith("sqlite:")):
            path = setting.get("path") or self.DEFAULT_PATH
            url = f"sqlite:///{Path(path).as_posix()}"
        config = StoreConfig.from_setting(setting, url)
        return Connection(config, SQLiteDialect(), self.create_engine, logger=logger)

    def create_engine(self, config: StoreConfig) -> Engine:
        database = make_url(config.dsn).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        # The pool hands connections to whichever thread asks; the busy
        # timeout makes concurrent writers wait instead of failing.
        return create_pool(
            config.dsn,
            connect_args={"check_same_thread": False, "timeout": config.connect_timeout},
        )


class DriverRegistry:
    """
    Name to driver mapping with an init/teardown lifecycle.

    Example:
        >>> registry = DriverRegistry()
        >>> register_default_drivers(registry)
        >>> registry.init()
        >>> conn = registry.connection("pgsql", {"host": "db"})
        >>> conn.open()
        >>> ...
        >>> registry.teardown()
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.log = logger or get_logger()
        self._drivers: Dict[str, Any] = {}
        self._connections: List[Connection] = []
        self._active = False
        self._lock = threading.Lock()

    def register(self, name: str, driver: Any) -> None:
        """Register ``driver`` under ``name``. Names are unique."""
        if not name:
            raise DriverError("Driver name must be non-empty")
        if not callable(getattr(driver, "connection", None)):
            raise DriverError(f"Driver '{name}' has no connection() method")
        with self._lock:
            if name in self._drivers:
                raise DriverError(f"Driver '{name}' is already registered")
            self._drivers[name] = driver
        self.log.debug("Driver registered", driver=name)

    def get(self, name: str) -> Any:
        with self._lock:
            try:
                return self._drivers[name]
            except KeyError:
                raise DriverError(f"Unknown driver: '{name}'") from None

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._drivers)

    @property
    def active(self) -> bool:
        return self._active

    def init(self) -> None:
        """Start handing out connections."""
        self._active = True
        self.log.debug("Driver registry initialized", drivers=self.names())

    def teardown(self) -> None:
        """Close every connection handed out and stop handing out new ones."""
        with self._lock:
            connections, self._connections = self._connections, []
            self._active = False
        for conn in connections:
            conn.close()
        self.log.debug("Driver registry torn down", closed=len(connections))

    def connection(self, name: str, setting: Optional[Mapping[str, Any]] = None) -> Connection:
        """
        Build an unopened Connection with driver ``name``.

        Raises:
            DriverError: Registry not initialized, or unknown driver
            ConfigurationError: Invalid setting mapping
        """
        if not self._active:
            raise DriverError("Driver registry is not initialized; call init() first")
        setting = setting or {}
        errors = validate_setting(setting)
        if errors:
            self.log.error("Invalid store setting", driver=name, setting=redact(setting), errors=errors)
            raise ConfigurationError(errors)

        conn = self.get(name).connection(setting, logger=self.log)
        with self._lock:
            # Closed connections cannot reopen; stop tracking them
            self._connections = [c for c in self._connections if not c.closed]
            self._connections.append(conn)
        return conn


def register_default_drivers(registry: DriverRegistry) -> None:
    """Register PostgreSQL as pgsql/postgres/postgresql and SQLite as sqlite."""
    postgres = PostgresDriver()
    for name in ("pgsql", "postgres", "postgresql"):
        registry.register(name, postgres)
    registry.register("sqlite", SQLiteDriver())
