"""
SQL dialects and identifier quoting.

Repositories build their statements from these fragments, so no backend
syntax leaks into them. PostgreSQL is the production backend. SQLite backs
local development and the test suite.

Table and schema names cannot be bound as parameters. They go through
quote_ident() and are interpolated. Values are always bound.
"""

import zlib
from typing import Optional

from sqlalchemy import text


def quote_ident(name: str) -> str:
    """Double-quote an identifier, doubling any embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


class PostgresDialect:
    """PostgreSQL: JSONB documents, TIMESTAMPTZ, BIGSERIAL ids, schemas."""

    name = "postgresql"
    supports_schema = True

    def qualify(self, schema: str, table: str) -> str:
        return quote_ident(schema) + "." + quote_ident(table)

    def now(self) -> str:
        return "now()"

    def json_param(self, param: str) -> str:
        # CAST rather than "::jsonb": SQLAlchemy would not see ":data::jsonb" as a bind
        return f"CAST(:{param} AS jsonb)"

    def json_text(self, column: str) -> str:
        return f"CAST({column} AS text)"

    def set_flag(self, column: str, field: str, value: bool) -> str:
        literal = "true" if value else "false"
        return f"jsonb_set({column}, '{{{field}}}', '{literal}'::jsonb, true)"

    def create_schema(self, schema: str) -> Optional[str]:
        return f"CREATE SCHEMA IF NOT EXISTS {quote_ident(schema)}"

    def create_jobs_table(self, table: str) -> str:
        return f"""
            CREATE TABLE IF NOT EXISTS {table} (
                name TEXT PRIMARY KEY,
                data JSONB NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """

    def create_logs_table(self, table: str) -> str:
        return f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id BIGSERIAL PRIMARY KEY,
                job TEXT NOT NULL,
                data JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """

    def create_logs_index(self, index: str, table: str) -> str:
        return f"CREATE INDEX IF NOT EXISTS {quote_ident(index)} ON {table} (job, id DESC)"

    def create_locks_table(self, table: str) -> str:
        return f"""
            CREATE TABLE IF NOT EXISTS {table} (
                name TEXT PRIMARY KEY,
                expired_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """

    def provision_guard(self, conn, schema: str) -> None:
        """Serialize concurrent provisioning of the same schema.

        CREATE ... IF NOT EXISTS can still fail with a unique violation on the
        catalog when two sessions race, so provisioning holds a
        transaction-scoped advisory lock.
        """
        key = zlib.crc32(f"cronstore:{schema}".encode("utf-8"))
        conn.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})

    def apply_timeout(self, conn, seconds: Optional[float]) -> None:
        if not seconds or seconds <= 0:
            return
        ms = max(1, int(seconds * 1000))
        conn.execute(
            text("SELECT set_config('statement_timeout', :ms, true)"),
            {"ms": str(ms)},
        )

    def is_timeout(self, exc: Exception) -> bool:
        # 57014: query_canceled
        orig = getattr(exc, "orig", None)
        return getattr(orig, "pgcode", None) == "57014"


class SQLiteDialect:
    """SQLite: JSON kept as TEXT, json_set() for merge-patch, no schemas."""

    name = "sqlite"
    supports_schema = False

    def qualify(self, schema: str, table: str) -> str:
        return quote_ident(table)

    def now(self) -> str:
        return "CURRENT_TIMESTAMP"

    def json_param(self, param: str) -> str:
        return f":{param}"

    def json_text(self, column: str) -> str:
        return column

    def set_flag(self, column: str, field: str, value: bool) -> str:
        literal = "true" if value else "false"
        return f"json_set({column}, '$.{field}', json('{literal}'))"

    def create_schema(self, schema: str) -> Optional[str]:
        return None

    def create_jobs_table(self, table: str) -> str:
        return f"""
            CREATE TABLE IF NOT EXISTS {table} (
                name TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
        """

    def create_logs_table(self, table: str) -> str:
        return f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job TEXT NOT NULL,
                data TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
        """

    def create_logs_index(self, index: str, table: str) -> str:
        return f"CREATE INDEX IF NOT EXISTS {quote_ident(index)} ON {table} (job, id DESC)"

    def create_locks_table(self, table: str) -> str:
        return f"""
            CREATE TABLE IF NOT EXISTS {table} (
                name TEXT PRIMARY KEY,
                expired_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
        """

    def provision_guard(self, conn, schema: str) -> None:
        # Writers are already serialized by the database file lock
        return None

    def apply_timeout(self, conn, seconds: Optional[float]) -> None:
        # No per-statement deadline; the busy timeout bounds lock waits
        return None

    def is_timeout(self, exc: Exception) -> bool:
        return False
