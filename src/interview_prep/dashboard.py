"""Mastery dashboard labels and statistics."""
from typing import Optional

from interview_prep.db import from_iso, get_connection
from interview_prep.flashcards import count_due_cards
from interview_prep.models import TOPICS


def get_mastery_label(score: float) -> str:
    if score >= 70:
        return "STRONG"
    elif score >= 40:
        return "DEVELOPING"
    return "WEAK"


def get_mastery_color(score: float) -> str:
    if score >= 70:
        return "green"
    elif score >= 40:
        return "yellow"
    return "red"


def _average(values: list) -> int:
    return round(sum(values) / len(values)) if values else 0


def topic_overview(db_path: str, user_id: str) -> list[dict]:
    """Per-topic average mastery, attempts and weakest categories."""
    conn = get_connection(db_path)
    results = []
    for topic_id, name in TOPICS.items():
        rows = conn.execute(
            """SELECT m.*, c.name AS category_name
            FROM category_mastery m JOIN categories c ON m.category_id = c.id
            WHERE m.user_id = ? AND m.topic_id = ?
            ORDER BY m.mastery_score ASC, c.name""",
            (user_id, topic_id.value),
        ).fetchall()
        studied = [from_iso(r["last_studied_at"]) for r in rows if r["last_studied_at"]]
        mastery = _average([r["mastery_score"] for r in rows])
        results.append({
            "topic_id": topic_id.value,
            "name": name,
            "mastery": mastery,
            "label": get_mastery_label(mastery),
            "attempts": sum(r["attempts_count"] for r in rows),
            "categories_studied": sum(1 for r in rows if r["attempts_count"] > 0),
            "last_studied_at": max(studied) if studied else None,
            "weakest": [
                {"category_name": r["category_name"], "mastery_score": r["mastery_score"]}
                for r in rows[:3]
            ],
        })
    conn.close()
    return results


def get_study_stats(db_path: str, user_id: str, topic_id: Optional[str] = None) -> dict:
    conn = get_connection(db_path)
    attempts = conn.execute(
        """SELECT item_type, COUNT(*) AS n FROM attempts
        WHERE user_id = ? GROUP BY item_type""",
        (user_id,),
    ).fetchall()
    counts = {r["item_type"]: r["n"] for r in attempts}
    sql = "SELECT mastery_score, attempts_count FROM category_mastery WHERE user_id = ?"
    params: list = [user_id]
    if topic_id is not None:
        sql += " AND topic_id = ?"
        params.append(topic_id)
    mastery_rows = conn.execute(sql, params).fetchall()
    conn.close()
    return {
        "total_attempts": sum(counts.values()),
        "questions_answered": counts.get("question", 0),
        "flashcards_reviewed": counts.get("flashcard", 0),
        "categories_studied": sum(1 for r in mastery_rows if r["attempts_count"] > 0),
        "overall_mastery": _average([r["mastery_score"] for r in mastery_rows]),
        "cards_due": count_due_cards(db_path, user_id),
    }
