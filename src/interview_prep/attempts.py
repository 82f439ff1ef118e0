"""Append-only attempt log and bulk progress reset."""
import logging
import sqlite3
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Optional

from interview_prep.db import from_iso, get_connection, placeholders, to_iso, utcnow
from interview_prep.errors import InvalidArgument
from interview_prep.models import AttemptRecord, AttemptResult, ItemType

logger = logging.getLogger(__name__)

QUESTION_RESULTS = frozenset({
    AttemptResult.CORRECT, AttemptResult.WRONG, AttemptResult.SELF_CORRECT,
    AttemptResult.SELF_WRONG, AttemptResult.DONT_KNOW,
})
FLASHCARD_RESULTS = frozenset({
    AttemptResult.KNEW, AttemptResult.DIDNT_KNOW,
    AttemptResult.SELF_CORRECT, AttemptResult.SELF_WRONG,
})


def new_attempt(
    user_id: str,
    item_type: ItemType,
    item_id: str,
    result: AttemptResult,
    time_spent_seconds: Optional[int] = None,
    created_at: Optional[datetime] = None,
) -> AttemptRecord:
    """Build a validated attempt record for one user response."""
    item_type = ItemType(item_type)
    result = AttemptResult(result)
    allowed = QUESTION_RESULTS if item_type == ItemType.QUESTION else FLASHCARD_RESULTS
    if result not in allowed:
        raise InvalidArgument(f"{result.value!r} is not a valid {item_type.value} result")
    if not item_id:
        raise InvalidArgument("attempt must reference an item")
    if time_spent_seconds is not None and time_spent_seconds < 0:
        raise InvalidArgument("time_spent_seconds must be non-negative")
    return AttemptRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        item_type=item_type,
        result=result,
        created_at=created_at or utcnow(),
        question_id=item_id if item_type == ItemType.QUESTION else None,
        flashcard_id=item_id if item_type == ItemType.FLASHCARD else None,
        time_spent_seconds=time_spent_seconds,
    )


def log_attempt(conn: sqlite3.Connection, record: AttemptRecord) -> None:
    """Append one attempt. The caller owns the transaction."""
    conn.execute(
        """INSERT INTO attempts
        (id, user_id, item_type, question_id, flashcard_id, result, time_spent_seconds, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            record.id, record.user_id, record.item_type.value, record.question_id,
            record.flashcard_id, record.result.value, record.time_spent_seconds,
            to_iso(record.created_at),
        ),
    )
    logger.debug("Logged %s attempt %s on %s", record.result.value, record.id, record.item_id)


def _row_to_attempt(row: sqlite3.Row) -> AttemptRecord:
    return AttemptRecord(
        id=row["id"],
        user_id=row["user_id"],
        item_type=ItemType(row["item_type"]),
        result=AttemptResult(row["result"]),
        created_at=from_iso(row["created_at"]),
        question_id=row["question_id"],
        flashcard_id=row["flashcard_id"],
        time_spent_seconds=row["time_spent_seconds"],
    )


def get_attempts(
    db_path: str,
    user_id: str,
    item_type: Optional[ItemType] = None,
    item_ids: Optional[list[str]] = None,
) -> list[AttemptRecord]:
    """A user's attempts in chronological order, optionally narrowed to some items."""
    sql = "SELECT * FROM attempts WHERE user_id = ?"
    params: list = [user_id]
    if item_type is not None:
        sql += " AND item_type = ?"
        params.append(ItemType(item_type).value)
    if item_ids is not None:
        if not item_ids:
            return []
        column = "flashcard_id" if item_type == ItemType.FLASHCARD else "question_id"
        sql += f" AND {column} IN ({placeholders(item_ids)})"
        params.extend(item_ids)
    sql += " ORDER BY created_at ASC, seq ASC"
    conn = get_connection(db_path)
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    return [_row_to_attempt(r) for r in rows]


def group_by_question(attempts: list[AttemptRecord]) -> dict[str, list[AttemptRecord]]:
    grouped = defaultdict(list)
    for attempt in attempts:
        if attempt.item_type == ItemType.QUESTION:
            grouped[attempt.question_id].append(attempt)
    return dict(grouped)


def reset_progress(db_path: str, user_id: str) -> dict:
    """Erase every attempt, mastery and flashcard schedule row for a user."""
    conn = get_connection(db_path)
    try:
        deleted = {}
        for table in ("attempts", "category_mastery", "flashcard_progress"):
            cursor = conn.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
            deleted[table] = cursor.rowcount
        conn.commit()
    finally:
        conn.close()
    logger.info("Reset progress for %s: %s", user_id, deleted)
    return deleted
