import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".learnboard"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULT_BUSY_TIMEOUT = 5.0


def _split_emails(raw: Any) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        raw = raw.split(",")
    return [str(email).strip().lower() for email in raw if str(email).strip()]


def load_config() -> Dict[str, Any]:
    """Load config from ~/.learnboard/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    database_cfg = config.get("database", {})
    db_path = os.getenv("LEARNBOARD_DB_PATH", database_cfg.get("path"))
    config["database"] = {
        "path": Path(db_path).expanduser() if db_path else None,
        "busy_timeout": float(os.getenv(
            "LEARNBOARD_BUSY_TIMEOUT",
            database_cfg.get("busy_timeout", DEFAULT_BUSY_TIMEOUT),
        )),
    }

    auth_cfg = config.get("auth", {})
    config["auth"] = {
        "session_secret": os.getenv("LEARNBOARD_SESSION_SECRET", auth_cfg.get("session_secret", "")),
        "admin_emails": _split_emails(
            os.getenv("LEARNBOARD_ADMIN_EMAILS", auth_cfg.get("admin_emails", []))
        ),
    }

    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("LEARNBOARD_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }

    bulk_cfg = config.get("bulk_upload", {})
    config["bulk_upload"] = {
        "max_templates": int(bulk_cfg.get("max_templates", 100)),
        "apply_default_complexity": bool(bulk_cfg.get("apply_default_complexity", True)),
        "apply_default_ai_generation": bool(bulk_cfg.get("apply_default_ai_generation", True)),
    }
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('auth', 'admin_emails')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
