from typing import Any, Dict, List, Mapping, Tuple
from urllib.parse import urlparse

STR_OPTIONS = [
    "dsn",
    "url",
    "host",
    "user",
    "username",
    "password",
    "database",
    "dbname",
    "sslmode",
    "path",
]
IDENT_OPTIONS = ["schema", "jobs_table", "logs_table", "locks_table"]
NUMERIC_OPTIONS = [
    "pool_size",
    "max_overflow",
    "pool_timeout",
    "connect_timeout",
    "statement_timeout",
]
KNOWN_OPTIONS = set(STR_OPTIONS) | set(IDENT_OPTIONS) | set(NUMERIC_OPTIONS) | {"port"}

SSL_MODES = {"disable", "allow", "prefer", "require", "verify-ca", "verify-full"}


def _is_number(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    if isinstance(v, (int, float)):
        return True
    if isinstance(v, str):
        try:
            float(v.strip())
            return True
        except ValueError:
            return False
    return False


def _valid_port(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    if isinstance(v, int):
        return 0 < v < 65536
    if isinstance(v, str):
        return v == "" or (v.isdigit() and 0 < int(v) < 65536)
    return False


def validate_setting(setting: Mapping[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    Empty strings are allowed everywhere: they mean "use the default".
    """
    errors: List[str] = []

    for f in STR_OPTIONS:
        if f in setting and setting[f] is not None and not isinstance(setting[f], str):
            errors.append(f"Option '{f}' must be a string if provided")

    for f in IDENT_OPTIONS:
        v = setting.get(f)
        if v is None:
            continue
        if not isinstance(v, str):
            errors.append(f"Option '{f}' must be a string if provided")
        elif "\x00" in v:
            errors.append(f"Option '{f}' must not contain NUL characters")

    if "port" in setting and setting["port"] is not None and not _valid_port(setting["port"]):
        errors.append("Option 'port' must be an integer or numeric string between 1 and 65535")

    for f in NUMERIC_OPTIONS:
        v = setting.get(f)
        if v is not None and v != "" and not _is_number(v):
            errors.append(f"Option '{f}' must be numeric if provided")

    sslmode = setting.get("sslmode")
    if isinstance(sslmode, str) and sslmode and sslmode not in SSL_MODES:
        errors.append(f"Option 'sslmode' must be one of: {', '.join(sorted(SSL_MODES))}")

    url = setting.get("url")
    if isinstance(url, str) and url.strip() and not urlparse(url).scheme:
        errors.append("Option 'url' must include a scheme")

    return errors


def validate_setting_strict(setting: Mapping[str, Any]) -> Tuple[bool, List[str]]:
    """Like validate_setting, but unknown options are errors too."""
    errors = validate_setting(setting)
    for key in sorted(k for k in setting if k not in KNOWN_OPTIONS):
        errors.append(f"Unknown option: {key}")
    return (not errors, errors)


def redact(setting: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of the setting safe to log: password and full DSNs hidden."""
    out = dict(setting)
    for key in ("password", "dsn", "url"):
        if out.get(key):
            out[key] = "***"
    return out
