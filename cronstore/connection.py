"""
Connection lifecycle.

A Connection owns one pooled engine. open() creates the pool, probes it and
provisions the schema; close() disposes the pool and is final. Job, log and
lock operations delegate to the repositories, which are bound to the engine
on open() and detached from it on close().
"""

from datetime import timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine

from .codec import Document
from .config import StoreConfig
from .database import Tables, ensure_schema, ping
from .errors import QueryError, StoreConnectionError
from .logger import StructuredLogger, get_logger
from .repositories.jobs import JobRegistry
from .repositories.locks import LockStore
from .repositories.logs import LogStore


class Connection:
    """
    Persistence and coordination handle for one scheduler instance.

    Safe to share between threads once open: every call checks a connection
    out of the pool for the duration of one transaction. Calls that start
    after close() raise StoreConnectionError; a statement already running
    when close() is called finishes on its checked-out connection.

    Example:
        >>> conn = registry.connection("pgsql", {"host": "db", "password": "s3cret"})
        >>> conn.open()
        >>> conn.add("backup", {"schedule": "0 * * * *", "disabled": False})
        >>> if conn.lock("backup:2024-01-01T10:00"):
        ...     conn.append_log({"job": "backup", "status": "ok"})
        >>> conn.close()
    """

    def __init__(
        self,
        config: StoreConfig,
        dialect,
        engine_factory: Callable[[StoreConfig], Engine],
        logger: Optional[StructuredLogger] = None,
    ):
        self.config = config
        self.dialect = dialect
        self.tables = Tables.from_config(config, dialect)
        self._engine_factory = engine_factory
        self.log = logger or get_logger()

        self._engine: Optional[Engine] = None
        self._closed = False
        self._jobs: Optional[JobRegistry] = None
        self._logs: Optional[LogStore] = None
        self._locks: Optional[LockStore] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def closed(self) -> bool:
        """True once close() has released an opened pool; a closed connection cannot reopen."""
        return self._closed

    def open(self) -> None:
        """
        Create the pool, verify the database answers, provision the schema.

        Raises:
            StoreConnectionError: Pool creation or liveness probe failed, or already
                open or closed
            QueryError: Schema provisioning failed
        """
        if self._engine is not None:
            raise StoreConnectionError("Connection is already open")
        if self._closed:
            raise StoreConnectionError("Connection is closed")

        try:
            engine = self._engine_factory(self.config)
        except (sa_exc.SQLAlchemyError, ImportError) as e:
            self.log.error("Cannot create connection pool", dialect=self.dialect.name, error=str(e))
            raise StoreConnectionError(f"Cannot create connection pool: {e}") from e

        try:
            ping(engine)
        except sa_exc.SQLAlchemyError as e:
            engine.dispose()
            self.log.error("Database is unreachable", dialect=self.dialect.name, error=str(e))
            raise StoreConnectionError(f"Database is unreachable: {e}") from e

        try:
            ensure_schema(engine, self.dialect, self.config)
        except sa_exc.SQLAlchemyError as e:
            engine.dispose()
            self.log.error("Schema provisioning failed", schema=self.config.schema, error=str(e))
            raise QueryError(f"Schema provisioning failed: {e}") from e

        self._engine = engine
        args = (engine, self.dialect, self.tables, self.log, self.config.statement_timeout)
        self._jobs = JobRegistry(*args)
        self._logs = LogStore(*args)
        self._locks = LockStore(*args)
        self.log.info(
            "Store opened",
            dialect=self.dialect.name,
            schema=self.config.schema,
            jobs_table=self.config.jobs_table,
            logs_table=self.config.logs_table,
            locks_table=self.config.locks_table,
        )

    def close(self) -> None:
        """Dispose the pool. No-op when never opened or already closed."""
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        for repository in (self._jobs, self._logs, self._locks):
            repository.detach()
        self._jobs = self._logs = self._locks = None
        self._closed = True
        engine.dispose()
        self.log.info("Store closed", dialect=self.dialect.name)

    def __enter__(self) -> "Connection":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require(self, repository):
        if repository is None:
            raise StoreConnectionError("Connection is not open")
        return repository

    # Job registry

    def add(self, name: str, job: Mapping[str, Any], timeout: Optional[float] = None) -> None:
        """Insert or replace job ``name`` with ``job``."""
        self._require(self._jobs).add(name, job, timeout=timeout)

    def enable(self, name: str, timeout: Optional[float] = None) -> int:
        """Clear the job's ``disabled`` flag; 0 when the job does not exist."""
        return self._require(self._jobs).enable(name, timeout=timeout)

    def disable(self, name: str, timeout: Optional[float] = None) -> int:
        """Set the job's ``disabled`` flag; 0 when the job does not exist."""
        return self._require(self._jobs).disable(name, timeout=timeout)

    def remove(self, name: str, timeout: Optional[float] = None) -> int:
        """Delete the job and its log rows in one transaction."""
        return self._require(self._jobs).remove(name, timeout=timeout)

    def list(self, timeout: Optional[float] = None) -> Dict[str, Document]:
        """All jobs keyed by name; undecodable rows are skipped."""
        return self._require(self._jobs).list(timeout=timeout)

    # Execution log

    def append_log(self, entry: Mapping[str, Any], timeout: Optional[float] = None) -> None:
        """Append one execution record; ``entry["job"]`` names the job."""
        self._require(self._logs).append_log(entry, timeout=timeout)

    def history(
        self,
        job_name: str,
        offset: int = 0,
        limit: int = 0,
        timeout: Optional[float] = None,
    ) -> Tuple[int, List[Document]]:
        """(total, newest-first page) of the job's log."""
        return self._require(self._logs).history(job_name, offset, limit, timeout=timeout)

    # Lock

    def lock(
        self,
        key: str,
        ttl: Union[float, timedelta, None] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """Insert-once lock on ``key``; False when someone already holds it."""
        return self._require(self._locks).lock(key, ttl, timeout=timeout)
