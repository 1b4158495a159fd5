from dataclasses import dataclass
from typing import Any, Mapping, Optional

DEFAULT_SCHEMA = "public"
DEFAULT_JOBS_TABLE = "cron_jobs"
DEFAULT_LOGS_TABLE = "cron_logs"
DEFAULT_LOCKS_TABLE = "cron_locks"


@dataclass(frozen=True)
class StoreConfig:
    """Resolved, typed form of the host's setting mapping.

    Table names:
    - schema (default: public; ignored by SQLite)
    - jobs_table / logs_table / locks_table (defaults: cron_jobs, cron_logs, cron_locks)

    Pool:
    - pool_size (default: 5), max_overflow (default: 10)
    - pool_timeout: seconds to wait for a pooled connection (default: 10)
    - connect_timeout: seconds to establish a new connection (default: 10)

    Deadlines:
    - statement_timeout: default per-operation deadline in seconds (default: none)
    """

    dsn: str
    schema: str = DEFAULT_SCHEMA
    jobs_table: str = DEFAULT_JOBS_TABLE
    logs_table: str = DEFAULT_LOGS_TABLE
    locks_table: str = DEFAULT_LOCKS_TABLE

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: float = 10.0
    connect_timeout: int = 10
    statement_timeout: Optional[float] = None

    @property
    def logs_index(self) -> str:
        return self.logs_table + "_job_id_idx"

    @classmethod
    def from_setting(cls, setting: Mapping[str, Any], dsn: str) -> "StoreConfig":
        return cls(
            dsn=dsn,
            schema=_name(setting, "schema", DEFAULT_SCHEMA),
            jobs_table=_name(setting, "jobs_table", DEFAULT_JOBS_TABLE),
            logs_table=_name(setting, "logs_table", DEFAULT_LOGS_TABLE),
            locks_table=_name(setting, "locks_table", DEFAULT_LOCKS_TABLE),
            pool_size=max(1, _int(setting, "pool_size", 5)),
            max_overflow=max(0, _int(setting, "max_overflow", 10)),
            pool_timeout=max(0.1, _float(setting, "pool_timeout", 10.0)),
            connect_timeout=max(1, _int(setting, "connect_timeout", 10)),
            statement_timeout=_optional_float(setting, "statement_timeout"),
        )


def _name(setting: Mapping[str, Any], key: str, default: str) -> str:
    value = setting.get(key)
    if isinstance(value, str) and value != "":
        return value
    return default


def _int(setting: Mapping[str, Any], key: str, default: int) -> int:
    raw = setting.get(key)
    if raw is None or isinstance(raw, bool):
        return int(default)
    try:
        return int(str(raw).strip())
    except ValueError:
        return int(default)


def _float(setting: Mapping[str, Any], key: str, default: float) -> float:
    raw = setting.get(key)
    if raw is None or isinstance(raw, bool):
        return float(default)
    try:
        return float(str(raw).strip())
    except ValueError:
        return float(default)


def _optional_float(setting: Mapping[str, Any], key: str) -> Optional[float]:
    raw = setting.get(key)
    if raw is None or raw == "":
        return None
    value = _float(setting, key, 0.0)
    return value if value > 0 else None
