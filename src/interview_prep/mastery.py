"""Per-category mastery derived from the attempt log.

Rolling accuracy is a running mean over the first ``1 / MIN_ALPHA``
attempts and an exponential moving average with step ``MIN_ALPHA``
after that, so recent attempts dominate once a category has history.
The mastery score is that accuracy scaled to 0-100. Each update only
needs the previous state and the new outcome.
"""
import logging
import sqlite3
from datetime import datetime
from typing import Optional

from interview_prep.db import as_utc, from_iso, get_connection, to_iso
from interview_prep.models import AttemptRecord, AttemptResult, CategoryMastery

logger = logging.getLogger(__name__)

MIN_ALPHA = 0.1


def update_mastery(
    previous: Optional[CategoryMastery],
    category_id: str,
    result: AttemptResult,
    at: datetime,
) -> CategoryMastery:
    """Fold one attempt outcome into a category's mastery."""
    outcome = 1.0 if AttemptResult(result).is_success else 0.0
    count = (previous.attempts_count if previous else 0) + 1
    if previous is None or previous.attempts_count == 0:
        accuracy = outcome
    else:
        prior = previous.rolling_accuracy
        if prior is None:
            prior = previous.mastery_score / 100
        alpha = max(1 / count, MIN_ALPHA)
        accuracy = prior + alpha * (outcome - prior)
    score = min(100, max(0, round(accuracy * 100)))
    last = as_utc(at)
    if previous and previous.last_studied_at and as_utc(previous.last_studied_at) > last:
        last = previous.last_studied_at
    return CategoryMastery(
        category_id=category_id,
        mastery_score=score,
        attempts_count=count,
        rolling_accuracy=accuracy,
        last_studied_at=last,
    )


def recompute(category_id: str, attempts: list[AttemptRecord]) -> CategoryMastery:
    """Replay a time-ordered attempt list from scratch."""
    mastery = CategoryMastery(category_id=category_id)
    for attempt in attempts:
        mastery = update_mastery(mastery, category_id, attempt.result, attempt.created_at)
    return mastery


def _row_to_mastery(row: sqlite3.Row) -> CategoryMastery:
    return CategoryMastery(
        category_id=row["category_id"],
        mastery_score=row["mastery_score"],
        attempts_count=row["attempts_count"],
        rolling_accuracy=row["rolling_accuracy"],
        last_studied_at=from_iso(row["last_studied_at"]),
    )


def get_category_mastery(
    db_path: str, user_id: str, topic_id: Optional[str] = None
) -> dict[str, CategoryMastery]:
    sql = "SELECT * FROM category_mastery WHERE user_id = ?"
    params: list = [user_id]
    if topic_id is not None:
        sql += " AND topic_id = ?"
        params.append(topic_id)
    conn = get_connection(db_path)
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    return {row["category_id"]: _row_to_mastery(row) for row in rows}


def apply_attempt(
    conn: sqlite3.Connection,
    user_id: str,
    category_id: str,
    result: AttemptResult,
    at: datetime,
) -> CategoryMastery:
    """Read-modify-write a category's mastery row. The caller owns the transaction."""
    row = conn.execute(
        "SELECT * FROM category_mastery WHERE user_id = ? AND category_id = ?",
        (user_id, category_id),
    ).fetchone()
    previous = _row_to_mastery(row) if row else None
    updated = update_mastery(previous, category_id, result, at)
    topic = conn.execute(
        "SELECT topic_id FROM categories WHERE id = ?", (category_id,)
    ).fetchone()
    if topic is None:
        raise LookupError(f"Unknown category: {category_id}")
    conn.execute(
        """INSERT INTO category_mastery
        (user_id, category_id, topic_id, mastery_score, attempts_count, rolling_accuracy, last_studied_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, category_id) DO UPDATE SET
            mastery_score=excluded.mastery_score,
            attempts_count=excluded.attempts_count,
            rolling_accuracy=excluded.rolling_accuracy,
            last_studied_at=excluded.last_studied_at""",
        (
            user_id, category_id, topic["topic_id"], updated.mastery_score,
            updated.attempts_count, updated.rolling_accuracy, to_iso(updated.last_studied_at),
        ),
    )
    logger.debug(
        "Mastery for %s now %d after %d attempts",
        category_id, updated.mastery_score, updated.attempts_count,
    )
    return updated
