from pathlib import Path

import pytest

import config
from db import database
from utils.auth import Identity

SESSION_SECRET = "test-secret"
ADMIN_EMAIL = "admin@example.com"


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[auth]",
                f'session_secret = "{SESSION_SECRET}"',
                f'admin_emails = ["{ADMIN_EMAIL}"]',
                "",
                "[logging]",
                'level = "DEBUG"',
                "",
                "[bulk_upload]",
                "max_templates = 10",
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    """Point config and database at a temporary directory."""
    config_dir = tmp_path / ".learnboard"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    for name in (
        "LEARNBOARD_DB_PATH",
        "LEARNBOARD_SESSION_SECRET",
        "LEARNBOARD_ADMIN_EMAILS",
        "LEARNBOARD_LOG_LEVEL",
        "LEARNBOARD_BUSY_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "learnboard.db")
    return config_dir


def _add_user(conn, email: str, name: str) -> int:
    cursor = conn.cursor()
    cursor.execute("INSERT INTO users (email, display_name) VALUES (?, ?)", (email, name))
    conn.commit()
    return cursor.lastrowid


@pytest.fixture
def conn(app_env):
    database.init_db(seed=False)
    with database.get_conn() as connection:
        yield connection


@pytest.fixture
def seeded_conn(app_env):
    database.init_db(seed=True)
    with database.get_conn() as connection:
        yield connection


@pytest.fixture
def editor(conn):
    user_id = _add_user(conn, "editor@example.com", "Editor")
    return Identity(user_id=user_id, email="editor@example.com", name="Editor")


@pytest.fixture
def admin(conn):
    user_id = _add_user(conn, ADMIN_EMAIL, "Admin")
    return Identity(user_id=user_id, email=ADMIN_EMAIL, name="Admin", is_admin=True)


def sample_template(**overrides) -> dict:
    template = {
        "name": "Chapter Study",
        "description": "Read a chapter and reflect on it",
        "icon": "book-open",
        "category": "reading",
        "options": [
            {
                "name": "Two Step",
                "description": "Read then reflect",
                "phases": [
                    {
                        "title": "Read",
                        "icon": "eye",
                        "color": "rgba(6, 182, 212, 1)",
                        "backgroundColor": "rgba(6, 182, 212, 0.1)",
                        "metrics": [
                            {"name": "Reading Time", "type": "time", "defaultValue": 0},
                            {"name": "Completion", "type": "percentage", "defaultValue": 0, "min": 0, "max": 100},
                        ],
                    },
                    {
                        "title": "Reflect",
                        "icon": "thought-bubble",
                        "color": "rgba(2, 132, 199, 1)",
                        "backgroundColor": "rgba(2, 132, 199, 0.1)",
                        "aiContentGeneration": {
                            "enabled": True,
                            "capabilities": ["generate_summaries"],
                            "basePrompt": "Summarise the chapter.",
                        },
                        "metrics": [
                            {"name": "Summary Quality", "type": "rating", "defaultValue": 3, "min": 1, "max": 5},
                            {"name": "Final Summary", "type": "text"},
                        ],
                    },
                ],
            }
        ],
    }
    template.update(overrides)
    return template
