"""SQLite database connection + schema initialization.

Kept lightweight on purpose for a single-school install:
- SQLite file stored locally (persists between restarts)
- schema created on first run
- `students.student_id` is UNIQUE, which is what makes a student insert a
  create-if-absent write (see crud.create_student)

The Streamlit UI will import this module.

"""

from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_DB_FILENAME = "school_admin.db"


@dataclass(frozen=True)
class DBConfig:
    """Database configuration for the app."""

    db_path: Path


def default_db_path() -> Path:
    """Resolve DB path.

    Uses `SCHOOL_ADMIN_DB` env var if set, else stores under `ui/database/`.
    """

    override = os.getenv("SCHOOL_ADMIN_DB")
    if override:
        return Path(override).expanduser().resolve()

    # Keep DB next to this file for portability
    return (Path(__file__).resolve().parent / DEFAULT_DB_FILENAME).resolve()


def get_connection(config: Optional[DBConfig] = None) -> sqlite3.Connection:
    """Create a SQLite connection with sane defaults."""

    db_path = (config.db_path if config else default_db_path())
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row

    # Ensure FK constraints are enforced
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create all required tables if they do not exist."""

    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS school_settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            school_name TEXT NOT NULL DEFAULT 'My School',
            school_code TEXT NOT NULL DEFAULT '102330',
            registration_year_prefix TEXT NOT NULL DEFAULT '26',
            student_id_prefix TEXT NOT NULL DEFAULT 'STD',
            student_id_width INTEGER NOT NULL DEFAULT 3 CHECK (student_id_width BETWEEN 1 AND 10),
            roll_width INTEGER NOT NULL DEFAULT 4 CHECK (roll_width BETWEEN 1 AND 10),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        INSERT OR IGNORE INTO school_settings (id) VALUES (1);

        CREATE TABLE IF NOT EXISTS classes (
            class_name TEXT PRIMARY KEY,
            sort_order INTEGER NOT NULL DEFAULT 0,
            capacity INTEGER CHECK (capacity IS NULL OR capacity > 0)
        );

        CREATE TABLE IF NOT EXISTS students (
            row_id INTEGER PRIMARY KEY AUTOINCREMENT,
            student_id TEXT NOT NULL UNIQUE,
            roll_number TEXT,
            registration_number TEXT,
            -- no FK: deleting a class must not delete its students
            class_name TEXT,
            name TEXT NOT NULL,
            gender TEXT,
            guardian_name TEXT,
            guardian_phone TEXT,
            email TEXT,
            student_type TEXT NOT NULL DEFAULT 'new' CHECK (student_type IN ('new','old')),
            is_active INTEGER NOT NULL DEFAULT 0 CHECK (is_active IN (0,1)),
            is_approved INTEGER NOT NULL DEFAULT 0 CHECK (is_approved IN (0,1)),
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE INDEX IF NOT EXISTS idx_students_class ON students(class_name);
        """
    )

    # --- Lightweight migrations (SQLite)
    # Older DBs predate the configurable id widths.
    settings_cols = {r[1] for r in conn.execute("PRAGMA table_info(school_settings)").fetchall()}
    if "student_id_width" not in settings_cols:
        conn.execute(
            "ALTER TABLE school_settings ADD COLUMN student_id_width INTEGER NOT NULL DEFAULT 3 CHECK (student_id_width BETWEEN 1 AND 10)"
        )
    if "roll_width" not in settings_cols:
        conn.execute("ALTER TABLE school_settings ADD COLUMN roll_width INTEGER NOT NULL DEFAULT 4 CHECK (roll_width BETWEEN 1 AND 10)")
    conn.commit()


class db_session:
    """Context manager that opens a connection and ensures schema exists."""

    def __init__(self, config: Optional[DBConfig] = None):
        self._config = config
        self._conn: Optional[sqlite3.Connection] = None

    def __enter__(self) -> sqlite3.Connection:
        self._conn = get_connection(self._config)
        init_db(self._conn)
        return self._conn

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self._conn is not None
        if exc_type is None:
            self._conn.commit()
        else:
            self._conn.rollback()
        self._conn.close()
        self._conn = None
