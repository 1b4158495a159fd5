"""
Jobs Repository.

Responsibilities:
- Upsert, enable/disable, remove and enumerate job documents.
- Transaction-safe writes; remove cascades to the job's log rows.

Non-Responsibilities:
- No schedule interpretation.
- No execution.
- No existence checks: enable/disable/remove on a missing name touch zero rows.

Invariant:
At most one row per job name. Documents are stored whole; only the
``disabled`` field is ever patched in place.
"""

from typing import Any, Dict, Mapping, Optional

from sqlalchemy import text

from ..codec import Document, decode_document
from ..errors import SerializationError
from .base import BaseRepository


class JobRegistry(BaseRepository):
    """Durable key-value store of job documents."""

    def add(self, name: str, job: Mapping[str, Any], timeout: Optional[float] = None) -> None:
        """
        Insert or fully replace a job document.

        The stored document's ``name`` field is set to ``name``.

        Raises:
            SerializationError: If the document cannot be encoded (nothing is sent)
            QueryError: On any database failure
        """
        if isinstance(job, Mapping):
            job = {**job, "name": name}
        data = self.encode("add", job)

        d = self.dialect
        sql = text(
            f"INSERT INTO {self.tables.jobs} (name, data, updated_at) "
            f"VALUES (:name, {d.json_param('data')}, {d.now()}) "
            f"ON CONFLICT (name) DO UPDATE SET data = excluded.data, updated_at = {d.now()}"
        )
        with self.transaction("add", timeout) as conn:
            conn.execute(sql, {"name": name, "data": data})
        self.log.debug("Job saved", job=name)

    def enable(self, name: str, timeout: Optional[float] = None) -> int:
        """Set ``disabled`` to false. Returns the number of rows touched (0 or 1)."""
        return self._set_disabled("enable", name, False, timeout)

    def disable(self, name: str, timeout: Optional[float] = None) -> int:
        """Set ``disabled`` to true. Returns the number of rows touched (0 or 1)."""
        return self._set_disabled("disable", name, True, timeout)

    def _set_disabled(self, operation: str, name: str, value: bool, timeout: Optional[float]) -> int:
        d = self.dialect
        sql = text(
            f"UPDATE {self.tables.jobs} "
            f"SET data = {d.set_flag('data', 'disabled', value)}, updated_at = {d.now()} "
            f"WHERE name = :name"
        )
        with self.transaction(operation, timeout) as conn:
            result = conn.execute(sql, {"name": name})
        self.log.debug(f"Job {operation}d", job=name, rows=result.rowcount)
        return result.rowcount

    def remove(self, name: str, timeout: Optional[float] = None) -> int:
        """
        Delete a job and every log row that references it, atomically.

        Returns:
            Number of job rows deleted (0 or 1)
        """
        with self.transaction("remove", timeout) as conn:
            jobs = conn.execute(
                text(f"DELETE FROM {self.tables.jobs} WHERE name = :name"),
                {"name": name},
            )
            logs = conn.execute(
                text(f"DELETE FROM {self.tables.logs} WHERE job = :name"),
                {"name": name},
            )
        self.log.debug("Job removed", job=name, jobs=jobs.rowcount, logs=logs.rowcount)
        return jobs.rowcount

    def list(self, timeout: Optional[float] = None) -> Dict[str, Document]:
        """
        Return every job keyed by name.

        Best effort: a row whose document does not decode is skipped and
        logged, so one corrupt row never breaks enumeration.
        """
        sql = text(
            f"SELECT name, {self.dialect.json_text('data')} AS data "
            f"FROM {self.tables.jobs} ORDER BY name"
        )
        with self.transaction("list", timeout) as conn:
            rows = conn.execute(sql).all()

        out: Dict[str, Document] = {}
        for name, raw in rows:
            try:
                doc = decode_document(raw)
            except SerializationError as e:
                self.log.record_skipped_row()
                self.log.warning("Skipping undecodable job row", job=name, error=str(e))
                continue
            doc["name"] = name
            out[name] = doc
        return out
