"""Wrong-answer review set and weak area identification."""
from typing import Optional

from interview_prep.attempts import get_attempts, group_by_question
from interview_prep.db import get_connection
from interview_prep.models import AttemptRecord, ItemType, Question
from interview_prep.quiz import get_questions


def compute_wrong_set(
    questions: list[Question],
    attempts_by_question: dict[str, list[AttemptRecord]],
) -> list[Question]:
    """Questions whose most recent attempt was a miss."""
    wrong = []
    for question in questions:
        attempts = attempts_by_question.get(question.id)
        if not attempts:
            continue
        # max() keeps the first of equal timestamps, so reverse to prefer the later entry
        latest = max(reversed(attempts), key=lambda a: a.created_at)
        if not latest.result.is_success:
            wrong.append(question)
    return wrong


def get_wrong_answers(db_path: str, user_id: str, topic_id: str) -> list[Question]:
    questions = get_questions(db_path, topic_id)
    if not questions:
        return []
    attempts = get_attempts(
        db_path, user_id, ItemType.QUESTION, [q.id for q in questions]
    )
    return compute_wrong_set(questions, group_by_question(attempts))


def get_weak_categories(
    db_path: str, user_id: str, topic_id: Optional[str] = None, limit: int = 8
) -> list[dict]:
    """Studied categories ordered weakest first."""
    sql = """SELECT m.category_id, c.name, m.topic_id, m.mastery_score, m.attempts_count
        FROM category_mastery m
        JOIN categories c ON m.category_id = c.id
        WHERE m.user_id = ?"""
    params: list = [user_id]
    if topic_id is not None:
        sql += " AND m.topic_id = ?"
        params.append(topic_id)
    sql += " ORDER BY m.mastery_score ASC, m.attempts_count DESC, c.name LIMIT ?"
    params.append(limit)
    conn = get_connection(db_path)
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    return [
        {
            "category_id": r["category_id"],
            "category_name": r["name"],
            "topic_id": r["topic_id"],
            "mastery_score": r["mastery_score"],
            "attempts_count": r["attempts_count"],
        }
        for r in rows
    ]
