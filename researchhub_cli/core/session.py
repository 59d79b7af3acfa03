import json
import logging
from typing import Optional

from . import config

logger = logging.getLogger(__name__)


def save_token(access_token: str, session_token: Optional[str] = None) -> None:
    """
    Stores the bearer token (and the session token, when known) in SESSION_FILE.
    """
    config.APP_DIR.mkdir(parents=True, exist_ok=True)
    data = {"access_token": access_token}
    if session_token:
        data["session_token"] = session_token
    with open(config.SESSION_FILE, "w", encoding="utf-8") as f:
        json.dump(data, f)
    config.SESSION_FILE.chmod(0o600)


def _load() -> dict:
    if not config.SESSION_FILE.exists():
        return {}
    try:
        with open(config.SESSION_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable session file %s: %s", config.SESSION_FILE, e)
        return {}
    return data if isinstance(data, dict) else {}


def load_token() -> Optional[str]:
    """
    Returns the stored bearer token, or None when there is no usable session file.
    """
    return _load().get("access_token")


def load_session_token() -> Optional[str]:
    return _load().get("session_token")


def is_logged_in() -> bool:
    return load_token() is not None


def clear_token() -> None:
    """
    Deletes the session file, ending the local session.
    """
    if config.SESSION_FILE.exists():
        config.SESSION_FILE.unlink()
