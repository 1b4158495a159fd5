"""
DSN resolution for the PostgreSQL backend.

Turns a loosely typed setting mapping into a canonical ``postgres://`` URL,
and that URL into what SQLAlchemy's ``create_engine`` expects.
"""

from typing import Any, Dict, Mapping, Tuple
from urllib.parse import quote, urlencode

CANONICAL_SCHEME = "postgres://"
ALIAS_SCHEMES = ("pgsql://", "postgresql://")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = "5432"
DEFAULT_USER = "postgres"
DEFAULT_DATABASE = "postgres"
DEFAULT_SSLMODE = "disable"


def _non_empty_str(setting: Mapping[str, Any], key: str) -> str:
    value = setting.get(key)
    if isinstance(value, str) and value != "":
        return value
    return ""


def normalize_pg_url(url: str) -> str:
    """Rewrite ``pgsql://`` and ``postgresql://`` to ``postgres://``; leave anything else alone."""
    for alias in ALIAS_SCHEMES:
        if url.startswith(alias):
            return CANONICAL_SCHEME + url[len(alias):]
    return url


def normalize_port(value: Any) -> str:
    """
    Return the port as a string, or "" when the value is not usable.

    Strings are taken as-is when non-empty. Integers must be positive.
    Booleans are rejected even though they are ints.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, int) and value > 0:
        return str(value)
    return ""


def parse_dsn(setting: Mapping[str, Any]) -> str:
    """
    Build a connection string from a setting mapping.

    Precedence: ``dsn`` verbatim, then ``url`` (scheme normalized), then
    the discrete fields with their defaults.

    Args:
        setting: Option name to value mapping supplied by the host

    Returns:
        Connection string
    """
    dsn = _non_empty_str(setting, "dsn")
    if dsn:
        return dsn

    url = _non_empty_str(setting, "url")
    if url:
        return normalize_pg_url(url)

    host = _non_empty_str(setting, "host") or DEFAULT_HOST
    port = normalize_port(setting.get("port")) or DEFAULT_PORT

    # "user" wins over "username", "dbname" over "database"
    user = _non_empty_str(setting, "user") or _non_empty_str(setting, "username") or DEFAULT_USER
    database = (
        _non_empty_str(setting, "dbname")
        or _non_empty_str(setting, "database")
        or DEFAULT_DATABASE
    )

    password = setting.get("password")
    if not isinstance(password, str):
        password = ""

    sslmode = _non_empty_str(setting, "sslmode") or DEFAULT_SSLMODE

    userinfo = f"{quote(user, safe='')}:{quote(password, safe='')}"
    query = urlencode({"sslmode": sslmode})
    return f"{CANONICAL_SCHEME}{userinfo}@{host}:{port}/{quote(database, safe='')}?{query}"


def to_sqlalchemy_url(dsn: str, driver: str = "psycopg2") -> Tuple[str, Dict[str, Any]]:
    """
    Convert a resolved DSN into ``(url, connect_args)`` for ``create_engine``.

    URL-style DSNs get the ``postgresql+<driver>`` scheme. A libpq key/value
    string (``host=... dbname=...``) cannot be expressed as a SQLAlchemy URL,
    so it is handed to the DBAPI through ``connect_args``.
    """
    dsn = normalize_pg_url(dsn)
    if dsn.startswith(CANONICAL_SCHEME):
        return f"postgresql+{driver}://{dsn[len(CANONICAL_SCHEME):]}", {}
    if dsn.startswith("postgresql+"):
        return dsn, {}
    return f"postgresql+{driver}://", {"dsn": dsn}
