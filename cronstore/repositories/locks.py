"""
Lock Repository.

Insert-once mutual exclusion: the first caller to insert a key wins, every
later caller gets False. Lock rows are never updated, expired or deleted
here, so keys should be unique per attempt (for example job name plus
scheduled tick).
"""

from datetime import timedelta
from typing import Optional, Union

from sqlalchemy import text

from .base import BaseRepository


class LockStore(BaseRepository):
    """Single-shot lock acquisition keyed by an arbitrary string."""

    def lock(
        self,
        key: str,
        ttl: Union[float, timedelta, None] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Try to acquire ``key``.

        Uses INSERT ... ON CONFLICT DO NOTHING, so the primary key decides
        races: exactly one concurrent caller sees True.

        Args:
            key: Lock key
            ttl: Accepted for interface compatibility; does not affect acquisition
            timeout: Statement deadline in seconds

        Returns:
            True if acquired, False if the key already exists

        Raises:
            QueryError: On any database failure other than the conflict
        """
        d = self.dialect
        sql = text(
            f"INSERT INTO {self.tables.locks} (name, expired_at, updated_at) "
            f"VALUES (:name, {d.now()}, {d.now()}) "
            f"ON CONFLICT (name) DO NOTHING"
        )
        with self.transaction("lock", timeout) as conn:
            result = conn.execute(sql, {"name": key})

        acquired = result.rowcount == 1
        self.log.record_lock(acquired)
        if acquired:
            self.log.debug("Lock acquired", key=key)
        else:
            self.log.debug("Lock already held", key=key)
        return acquired
