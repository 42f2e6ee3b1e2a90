# SQL schema for the Learnboard database

SCHEMA_VERSION = 3

SCHEMA_SQL = """
-- Users (resolved from the session cookie)
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT UNIQUE NOT NULL,
    display_name TEXT
);

-- Learning templates
CREATE TABLE IF NOT EXISTS learning_templates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    icon TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'reading' CHECK(category IN ('reading', 'problem-solving', 'lecture')),
    is_default INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    complexity_levels TEXT,
    created_by INTEGER,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (created_by) REFERENCES users (id) ON DELETE SET NULL
);

-- Options (approaches) under a template
CREATE TABLE IF NOT EXISTS learning_options (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    template_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (template_id) REFERENCES learning_templates (id) ON DELETE CASCADE
);

-- Ordered phases under an option
CREATE TABLE IF NOT EXISTS learning_phases (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    option_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    icon TEXT NOT NULL,
    color TEXT NOT NULL,
    background_color TEXT NOT NULL,
    sequence_number INTEGER NOT NULL,
    ai_generation TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (option_id) REFERENCES learning_options (id) ON DELETE CASCADE
);

-- Ordered metrics under a phase
CREATE TABLE IF NOT EXISTS phase_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    phase_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    metric_type TEXT NOT NULL CHECK(metric_type IN ('percentage', 'time', 'count', 'rating', 'text')),
    default_value TEXT,
    min_value REAL,
    max_value REAL,
    sequence_number INTEGER NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (phase_id) REFERENCES learning_phases (id) ON DELETE CASCADE
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_templates_active ON learning_templates (is_active);
CREATE INDEX IF NOT EXISTS idx_options_template ON learning_options (template_id);
CREATE INDEX IF NOT EXISTS idx_phases_option_seq ON learning_phases (option_id, sequence_number);
CREATE INDEX IF NOT EXISTS idx_metrics_phase_seq ON phase_metrics (phase_id, sequence_number);
"""
