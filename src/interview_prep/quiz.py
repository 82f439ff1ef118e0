"""Quiz engine: adaptive question selection and answer recording."""
import json
import logging
import random
import sqlite3
from datetime import datetime
from typing import Optional

from interview_prep.attempts import log_attempt, new_attempt
from interview_prep.db import as_utc, get_connection, placeholders, utcnow
from interview_prep.errors import InvalidArgument
from interview_prep.mastery import apply_attempt
from interview_prep.models import (
    AttemptResult, CategoryMastery, ItemType, Presentation, Question,
    QuestionType, QuizFormat, QuizItem,
)

logger = logging.getLogger(__name__)

DEFAULT_MASTERY_SCORE = 50


def question_weight(mastery: Optional[CategoryMastery]) -> float:
    """Weaker categories weigh more: 1 at mastery 100, 5 at mastery 0."""
    score = mastery.mastery_score if mastery is not None else DEFAULT_MASTERY_SCORE
    return 1 + (100 - score) / 25


def choose_presentation(
    question: Question,
    mastery: Optional[CategoryMastery],
    quiz_format: QuizFormat,
    rng: random.Random,
) -> Presentation:
    """Decide whether a question is shown as multiple choice or open-ended.

    Under the adaptive format an MCQ question is promoted to open-ended
    more often the better its category is known.
    """
    if question.type == QuestionType.OPEN:
        return Presentation.OPEN
    if quiz_format == QuizFormat.MCQ:
        return Presentation.MCQ
    if quiz_format == QuizFormat.OPEN:
        return Presentation.OPEN

    score = mastery.mastery_score if mastery is not None else DEFAULT_MASTERY_SCORE
    attempts = mastery.attempts_count if mastery is not None else 0
    r = rng.random()
    if score > 80 and attempts >= 10:
        is_open = r > 0.2
    elif score > 60:
        is_open = r > 0.5
    else:
        is_open = r > 0.9
    return Presentation.OPEN if is_open else Presentation.MCQ


def build_quiz(
    pool: list[Question],
    mastery_by_category: dict[str, CategoryMastery],
    quiz_format: QuizFormat = QuizFormat.ADAPTIVE,
    category_ids: Optional[set[str]] = None,
    length: int = 10,
    rng: Optional[random.Random] = None,
) -> list[QuizItem]:
    """Pick and order up to ``length`` questions, each tagged with its presentation.

    ``category_ids`` of None (or empty) means every category. Returns fewer
    items when fewer questions are eligible.
    """
    if length <= 0:
        raise InvalidArgument(f"quiz length must be positive, got {length}")
    rng = rng or random.Random()
    quiz_format = QuizFormat(quiz_format)

    eligible = [q for q in pool if not category_ids or q.category_id in category_ids]
    if quiz_format == QuizFormat.MCQ:
        eligible = [q for q in eligible if q.type == QuestionType.MCQ]
    elif quiz_format == QuizFormat.OPEN:
        eligible = [q for q in eligible if q.type == QuestionType.OPEN]

    # Shuffle first so equal weights come out in random order
    rng.shuffle(eligible)
    if quiz_format == QuizFormat.ADAPTIVE:
        eligible.sort(
            key=lambda q: question_weight(mastery_by_category.get(q.category_id)),
            reverse=True,
        )

    items = [
        QuizItem(
            question=q,
            presentation=choose_presentation(
                q, mastery_by_category.get(q.category_id), quiz_format, rng
            ),
        )
        for q in eligible[:length]
    ]
    logger.debug(
        "Built %s quiz: %d of %d eligible questions", quiz_format.value, len(items), len(eligible)
    )
    return items


def grade_mcq(question: Question, choice_index: int) -> AttemptResult:
    if question.type != QuestionType.MCQ or question.correct_choice_index is None:
        raise InvalidArgument(f"Question {question.id} has no multiple-choice answer")
    if not 0 <= choice_index < len(question.choices or []):
        raise InvalidArgument(f"Choice {choice_index} out of range for question {question.id}")
    if choice_index == question.correct_choice_index:
        return AttemptResult.CORRECT
    return AttemptResult.WRONG


def _row_to_question(row: sqlite3.Row) -> Question:
    return Question(
        id=row["id"],
        topic_id=row["topic_id"],
        category_id=row["category_id"],
        type=QuestionType(row["type"]),
        prompt=row["prompt"],
        choices=json.loads(row["choices"]) if row["choices"] else None,
        correct_choice_index=row["correct_choice_index"],
        answer=row["answer"],
        explanation=row["explanation"],
        difficulty=row["difficulty"],
    )


def get_questions(
    db_path: str, topic_id: str, category_ids: Optional[list[str]] = None
) -> list[Question]:
    sql = "SELECT * FROM questions WHERE topic_id = ?"
    params: list = [topic_id]
    if category_ids:
        sql += f" AND category_id IN ({placeholders(category_ids)})"
        params.extend(category_ids)
    conn = get_connection(db_path)
    rows = conn.execute(sql + " ORDER BY id", params).fetchall()
    conn.close()
    return [_row_to_question(r) for r in rows]


def search_questions(
    db_path: str, topic_id: str, category_id: Optional[str] = None, query: str = ""
) -> list[Question]:
    """A topic's questions, narrowed to one category and to a case-insensitive text match.

    The query is matched against the prompt, the reference answer and the
    explanation. A blank query matches everything.
    """
    questions = get_questions(db_path, topic_id, [category_id] if category_id else None)
    needle = query.strip().lower()
    if not needle:
        return questions
    return [
        q for q in questions
        if any(needle in (text or "").lower() for text in (q.prompt, q.answer, q.explanation))
    ]


def record_quiz_answer(
    db_path: str,
    user_id: str,
    question: Question,
    result: AttemptResult,
    now: Optional[datetime] = None,
    time_spent_seconds: Optional[int] = None,
) -> CategoryMastery:
    """Log a quiz response and fold it into the category's mastery.

    Returns the updated mastery; nothing is written if any step fails.
    """
    now = as_utc(now or utcnow())
    attempt = new_attempt(
        user_id, ItemType.QUESTION, question.id, result,
        time_spent_seconds=time_spent_seconds, created_at=now,
    )
    conn = get_connection(db_path)
    try:
        log_attempt(conn, attempt)
        mastery = apply_attempt(conn, user_id, question.category_id, attempt.result, now)
        conn.commit()
    finally:
        conn.close()
    return mastery
