"""
Execution Log Repository.

Append-only. Rows are never updated; they disappear only when the owning
job is removed (see JobRegistry.remove).
"""

from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import text

from ..codec import Document, decode_document
from ..errors import SerializationError
from .base import BaseRepository


class LogStore(BaseRepository):
    """Append and page through execution records."""

    def append_log(self, entry: Mapping[str, Any], timeout: Optional[float] = None) -> None:
        """
        Insert one log entry.

        The entry's ``job`` field must already name the owning job.

        Raises:
            SerializationError: If ``job`` is missing or the entry cannot be encoded
            QueryError: On any database failure
        """
        job = entry.get("job") if isinstance(entry, Mapping) else None
        if not isinstance(job, str) or not job:
            self.log.record_operation("append_log")
            self.log.record_failure("append_log", SerializationError.__name__)
            raise SerializationError("Log entry must carry a non-empty 'job' reference")
        data = self.encode("append_log", entry)

        d = self.dialect
        sql = text(
            f"INSERT INTO {self.tables.logs} (job, data, created_at) "
            f"VALUES (:job, {d.json_param('data')}, {d.now()})"
        )
        with self.transaction("append_log", timeout) as conn:
            conn.execute(sql, {"job": job, "data": data})
        self.log.debug("Log appended", job=job)

    def history(
        self,
        job_name: str,
        offset: int = 0,
        limit: int = 0,
        timeout: Optional[float] = None,
    ) -> Tuple[int, List[Document]]:
        """
        Page through a job's log, newest first.

        Args:
            job_name: Job whose log to read
            offset: Rows to skip; negative values count as 0
            limit: Page size; zero or negative means all remaining rows

        Returns:
            (total rows for the job, page of decoded entries)

        Raises:
            SerializationError: If any row in the page fails to decode
        """
        with self.transaction("history", timeout) as conn:
            total = conn.execute(
                text(f"SELECT count(1) FROM {self.tables.logs} WHERE job = :job"),
                {"job": job_name},
            ).scalar_one()
            total = int(total)
            if total == 0:
                return 0, []

            offset = max(0, int(offset))
            limit = int(limit) if limit > 0 else total

            rows = conn.execute(
                text(
                    f"SELECT {self.dialect.json_text('data')} FROM {self.tables.logs} "
                    f"WHERE job = :job ORDER BY id DESC LIMIT :limit OFFSET :offset"
                ),
                {"job": job_name, "limit": limit, "offset": offset},
            ).scalars().all()

            # Fail fast: a partial audit trail is worse than none
            page = [decode_document(raw) for raw in rows]

        return total, page
