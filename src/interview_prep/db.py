"""Database initialization and connection management."""
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = os.environ.get(
    "INTERVIEW_PREP_DB", str(Path.home() / ".interview_prep" / "prep.db")
)
DEFAULT_USER_ID = "local"

SCHEMA = """
CREATE TABLE IF NOT EXISTS topics (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    topic_id TEXT NOT NULL REFERENCES topics(id),
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    topic_id TEXT NOT NULL REFERENCES topics(id),
    category_id TEXT NOT NULL REFERENCES categories(id),
    type TEXT NOT NULL CHECK (type IN ('mcq', 'open')),
    prompt TEXT NOT NULL,
    choices TEXT,
    correct_choice_index INTEGER,
    answer TEXT,
    explanation TEXT,
    difficulty INTEGER
);

CREATE TABLE IF NOT EXISTS flashcards (
    id TEXT PRIMARY KEY,
    topic_id TEXT NOT NULL REFERENCES topics(id),
    category_id TEXT NOT NULL REFERENCES categories(id),
    front TEXT NOT NULL,
    back TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS attempts (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    item_type TEXT NOT NULL CHECK (item_type IN ('question', 'flashcard')),
    question_id TEXT REFERENCES questions(id),
    flashcard_id TEXT REFERENCES flashcards(id),
    result TEXT NOT NULL,
    time_spent_seconds INTEGER,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_attempts_user ON attempts(user_id, item_type, created_at);

CREATE TABLE IF NOT EXISTS flashcard_progress (
    user_id TEXT NOT NULL,
    flashcard_id TEXT NOT NULL REFERENCES flashcards(id),
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval_days INTEGER NOT NULL DEFAULT 0,
    repetitions INTEGER NOT NULL DEFAULT 0,
    next_review_at TEXT NOT NULL,
    last_reviewed_at TEXT,
    PRIMARY KEY (user_id, flashcard_id)
);

CREATE TABLE IF NOT EXISTS category_mastery (
    user_id TEXT NOT NULL,
    category_id TEXT NOT NULL REFERENCES categories(id),
    topic_id TEXT NOT NULL REFERENCES topics(id),
    mastery_score INTEGER NOT NULL DEFAULT 0 CHECK (mastery_score BETWEEN 0 AND 100),
    attempts_count INTEGER NOT NULL DEFAULT 0,
    rolling_accuracy REAL,
    last_studied_at TEXT,
    PRIMARY KEY (user_id, category_id)
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC ISO string so stored timestamps sort as text."""
    if value is None:
        return None
    return as_utc(value).astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))


def placeholders(values) -> str:
    return ", ".join("?" for _ in values)
