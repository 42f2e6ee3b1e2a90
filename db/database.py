import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from config import load_config
from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".learnboard"
DB_PATH = CONFIG_DIR / "learnboard.db"


def get_db_path() -> Path:
    """Database location: the configured path if any, else DB_PATH."""
    configured = load_config()["database"]["path"]
    return Path(configured) if configured else DB_PATH


def init_db(seed: bool = True):
    """Initialize the database by creating tables and indexes if they don't exist."""
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with get_conn() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        ensure_template_category(conn)
        ensure_template_complexity(conn)
        ensure_phase_ai_generation(conn)
        ensure_schema_version(conn)
        conn.commit()
        if seed:
            from .seed import seed_default_templates

            seed_default_templates(conn)
    logger.info("Database ready at %s (schema v%s)", db_path, SCHEMA_VERSION)


def _columns(conn: sqlite3.Connection, table: str) -> set:
    cursor = conn.cursor()
    cursor.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cursor.fetchall()}


def ensure_template_category(conn: sqlite3.Connection) -> None:
    """Ensure learning_templates has the category column for existing installs."""
    if "category" not in _columns(conn, "learning_templates"):
        conn.execute(
            "ALTER TABLE learning_templates ADD COLUMN category TEXT NOT NULL DEFAULT 'reading'"
        )


def ensure_template_complexity(conn: sqlite3.Connection) -> None:
    """Ensure learning_templates has the complexity_levels column."""
    if "complexity_levels" not in _columns(conn, "learning_templates"):
        conn.execute("ALTER TABLE learning_templates ADD COLUMN complexity_levels TEXT")


def ensure_phase_ai_generation(conn: sqlite3.Connection) -> None:
    """Ensure learning_phases has the ai_generation column."""
    if "ai_generation" not in _columns(conn, "learning_phases"):
        conn.execute("ALTER TABLE learning_phases ADD COLUMN ai_generation TEXT")


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the SQLite schema version from PRAGMA user_version."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA user_version")
    row = cursor.fetchone()
    return int(row[0]) if row else 0


def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Set the SQLite schema version via PRAGMA user_version."""
    conn.execute(f"PRAGMA user_version = {int(version)}")


def ensure_schema_version(conn: sqlite3.Connection) -> None:
    """Ensure the current schema version is written to the database."""
    current = get_schema_version(conn)
    if current != SCHEMA_VERSION:
        set_schema_version(conn, SCHEMA_VERSION)


@contextmanager
def get_conn():
    """Context manager for SQLite connection, using row_factory for dict-like rows."""
    timeout = load_config()["database"]["busy_timeout"]
    conn = sqlite3.connect(get_db_path(), timeout=timeout, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Run a block as one write transaction: commit on success, roll back on any error.

    BEGIN IMMEDIATE takes the database write lock up front, so two
    transactions touching the same rows never interleave.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def get_db():
    """FastAPI dependency that yields a DB connection and closes it afterwards."""
    with get_conn() as conn:
        yield conn
