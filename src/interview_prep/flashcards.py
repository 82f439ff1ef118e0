"""Flashcard session logic with SM-2 scheduling."""
import logging
import sqlite3
from datetime import datetime
from typing import Iterable, Optional

from interview_prep.attempts import log_attempt, new_attempt
from interview_prep.db import as_utc, from_iso, get_connection, placeholders, to_iso, utcnow
from interview_prep.errors import InvalidArgument
from interview_prep.mastery import apply_attempt
from interview_prep.models import (
    AttemptResult, Flashcard, FlashcardScheduleState, ItemType,
)
from interview_prep.sm2 import ReviewResult, compute_next_review

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# Priority tiers, lowest sorts first
NEW, OVERDUE, NOT_DUE = 0, 1, 2


def due_priority(schedule: Optional[FlashcardScheduleState], now: datetime) -> tuple:
    """Sort key for one card: new cards, then most overdue, then soonest due."""
    if schedule is None:
        return (NEW, 0.0)
    elapsed = as_utc(now) - as_utc(schedule.next_review_at)
    days_overdue = elapsed.total_seconds() / SECONDS_PER_DAY
    if days_overdue >= 0:
        return (OVERDUE, -days_overdue)
    # days_overdue is negative here, so this grows with time until due
    return (NOT_DUE, 1000 - days_overdue)


def select_due(
    candidate_ids: Iterable[str],
    schedule_by_card_id: dict[str, Optional[FlashcardScheduleState]],
    now: datetime,
    limit: int,
) -> list[str]:
    """Rank candidate cards for a review session and keep the first ``limit``."""
    if limit <= 0:
        raise InvalidArgument(f"limit must be positive, got {limit}")
    ranked = sorted(
        set(candidate_ids),
        key=lambda card_id: (due_priority(schedule_by_card_id.get(card_id), now), str(card_id)),
    )
    return ranked[:limit]


def _row_to_flashcard(row: sqlite3.Row) -> Flashcard:
    return Flashcard(
        id=row["id"],
        topic_id=row["topic_id"],
        category_id=row["category_id"],
        front=row["front"],
        back=row["back"],
    )


def _row_to_schedule(row: sqlite3.Row) -> FlashcardScheduleState:
    return FlashcardScheduleState(
        ease_factor=row["ease_factor"],
        interval_days=row["interval_days"],
        repetitions=row["repetitions"],
        next_review_at=from_iso(row["next_review_at"]),
        last_reviewed_at=from_iso(row["last_reviewed_at"]),
    )


def get_flashcards(
    db_path: str, topic_id: str, category_ids: Optional[list[str]] = None
) -> list[Flashcard]:
    sql = "SELECT * FROM flashcards WHERE topic_id = ?"
    params: list = [topic_id]
    if category_ids:
        sql += f" AND category_id IN ({placeholders(category_ids)})"
        params.extend(category_ids)
    conn = get_connection(db_path)
    rows = conn.execute(sql + " ORDER BY id", params).fetchall()
    conn.close()
    return [_row_to_flashcard(r) for r in rows]


def get_schedules(
    db_path: str, user_id: str, card_ids: list[str]
) -> dict[str, FlashcardScheduleState]:
    if not card_ids:
        return {}
    conn = get_connection(db_path)
    rows = conn.execute(
        f"""SELECT * FROM flashcard_progress
        WHERE user_id = ? AND flashcard_id IN ({placeholders(card_ids)})""",
        [user_id, *card_ids],
    ).fetchall()
    conn.close()
    return {row["flashcard_id"]: _row_to_schedule(row) for row in rows}


def get_cards_for_review(
    db_path: str,
    user_id: str,
    topic_id: str,
    category_ids: Optional[list[str]] = None,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> list[Flashcard]:
    """Highest-priority cards for a session, in review order."""
    now = as_utc(now or utcnow())
    cards = {c.id: c for c in get_flashcards(db_path, topic_id, category_ids)}
    if not cards:
        return []
    schedules = get_schedules(db_path, user_id, list(cards))
    return [cards[card_id] for card_id in select_due(cards, schedules, now, limit)]


def count_due_cards(db_path: str, user_id: str, now: Optional[datetime] = None) -> int:
    """Cards never reviewed plus cards whose review time has passed."""
    now = as_utc(now or utcnow())
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COUNT(*) FROM flashcards f
        LEFT JOIN flashcard_progress p ON p.flashcard_id = f.id AND p.user_id = ?
        WHERE p.flashcard_id IS NULL OR p.next_review_at <= ?""",
        (user_id, to_iso(now)),
    ).fetchone()
    conn.close()
    return row[0]


def record_flashcard_result(
    db_path: str,
    user_id: str,
    card_id: str,
    quality: int,
    now: Optional[datetime] = None,
    time_spent_seconds: Optional[int] = None,
) -> ReviewResult:
    """Log a review, reschedule the card and update its category mastery.

    All three writes commit together or not at all.
    """
    now = as_utc(now or utcnow())
    conn = get_connection(db_path)
    try:
        card = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
        if card is None:
            raise LookupError(f"Unknown flashcard: {card_id}")
        row = conn.execute(
            "SELECT * FROM flashcard_progress WHERE user_id = ? AND flashcard_id = ?",
            (user_id, card_id),
        ).fetchone()
        prior = _row_to_schedule(row) if row else FlashcardScheduleState.new(now)
        updated = compute_next_review(
            quality=quality,
            ease_factor=prior.ease_factor,
            interval_days=prior.interval_days,
            repetitions=prior.repetitions,
            now=now,
        )
        result = AttemptResult.KNEW if quality >= 3 else AttemptResult.DIDNT_KNOW
        attempt = new_attempt(
            user_id, ItemType.FLASHCARD, card_id, result,
            time_spent_seconds=time_spent_seconds, created_at=now,
        )
        log_attempt(conn, attempt)
        conn.execute(
            """INSERT INTO flashcard_progress
            (user_id, flashcard_id, ease_factor, interval_days, repetitions, next_review_at, last_reviewed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, flashcard_id) DO UPDATE SET
                ease_factor=excluded.ease_factor,
                interval_days=excluded.interval_days,
                repetitions=excluded.repetitions,
                next_review_at=excluded.next_review_at,
                last_reviewed_at=excluded.last_reviewed_at""",
            (
                user_id, card_id, updated.ease_factor, updated.interval_days,
                updated.repetitions, to_iso(updated.next_review_at), to_iso(now),
            ),
        )
        apply_attempt(conn, user_id, card["category_id"], result, now)
        conn.commit()
    finally:
        conn.close()
    logger.debug(
        "Card %s rescheduled in %d days (ease %.2f)",
        card_id, updated.interval_days, updated.ease_factor,
    )
    return updated
