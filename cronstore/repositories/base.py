"""
Shared plumbing for the repositories.

Each store operation runs in one engine transaction with an optional
statement deadline. SQLAlchemy errors are translated into the cronstore
taxonomy at this boundary.
"""

from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine

from ..codec import encode_document
from ..database import Tables
from ..errors import (
    CronStoreError,
    QueryError,
    QueryTimeoutError,
    SerializationError,
    StoreConnectionError,
)
from ..logger import StructuredLogger


class BaseRepository:
    """Engine, dialect and table names shared by the job, log and lock stores."""

    def __init__(
        self,
        engine: Engine,
        dialect,
        tables: Tables,
        log: StructuredLogger,
        default_timeout: Optional[float] = None,
    ):
        self.engine: Optional[Engine] = engine
        self.dialect = dialect
        self.tables = tables
        self.log = log
        self.default_timeout = default_timeout

    @contextmanager
    def transaction(self, operation: str, timeout: Optional[float] = None):
        """Yield a connection inside a transaction; commit on success, roll back on any error."""
        self.log.record_operation(operation)
        deadline = timeout if timeout is not None else self.default_timeout
        try:
            engine = self.engine
            if engine is None:
                raise StoreConnectionError("Connection is closed")
            with engine.begin() as conn:
                self.dialect.apply_timeout(conn, deadline)
                yield conn
        except sa_exc.SQLAlchemyError as e:
            err = self._translate(operation, e)
            self.log.record_failure(operation, type(err).__name__)
            self.log.error(f"{operation} failed", error=str(e))
            raise err from e
        except CronStoreError as e:
            self.log.record_failure(operation, type(e).__name__)
            raise

    def detach(self) -> None:
        """Drop the engine; later calls raise StoreConnectionError."""
        self.engine = None

    def encode(self, operation: str, doc: Any) -> str:
        """Encode before any round trip so a bad document never reaches the database."""
        try:
            return encode_document(doc)
        except SerializationError:
            self.log.record_operation(operation)
            self.log.record_failure(operation, SerializationError.__name__)
            raise

    def _translate(self, operation: str, e: sa_exc.SQLAlchemyError) -> QueryError:
        # sa_exc.TimeoutError is the pool checkout timeout
        if isinstance(e, sa_exc.TimeoutError) or self.dialect.is_timeout(e):
            return QueryTimeoutError(f"{operation} timed out: {e}")
        return QueryError(f"{operation} failed: {e}")
