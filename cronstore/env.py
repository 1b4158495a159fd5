import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULT_PREFIX = "CRON_STORE_"


def load_env(env_path: Optional[Path] = None) -> None:
    """Load .env from the working directory (or env_path) if present.
    Variables already set in the process environment win.
    """
    env_path = env_path or Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def setting_from_env(prefix: str = DEFAULT_PREFIX, env_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Collect ``<prefix><OPTION>`` variables into a setting mapping.

    CRON_STORE_HOST=db.internal becomes {"host": "db.internal"}. Values stay
    strings; the DSN and config layers accept strings for every option.
    """
    load_env(env_path)
    setting: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith(prefix) and len(key) > len(prefix):
            setting[key[len(prefix):].lower()] = value
    return setting
