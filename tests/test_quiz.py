# tests/test_quiz.py
import random
import sqlite3
from datetime import datetime, timedelta

import pytest

from conftest import NOW, USER, FixedRng
from interview_prep.db import get_connection, init_db
from interview_prep.errors import InvalidArgument
from interview_prep.models import (
    AttemptResult, CategoryMastery, Presentation, Question, QuestionType, QuizFormat,
)
from interview_prep.quiz import (
    build_quiz, choose_presentation, get_questions, grade_mcq, question_weight,
    search_questions,
    record_quiz_answer,
)
from interview_prep.seed import seed_all


def _q(qid, category="cat-a", qtype=QuestionType.MCQ):
    if qtype == QuestionType.MCQ:
        return Question(
            id=qid, topic_id="react", category_id=category, type=qtype, prompt=f"{qid}?",
            choices=["w", "x", "y", "z"], correct_choice_index=2,
        )
    return Question(id=qid, topic_id="react", category_id=category, type=qtype,
                    prompt=f"{qid}?", answer="ref")


def _m(score, attempts=0, category="cat-a"):
    return CategoryMastery(category_id=category, mastery_score=score, attempts_count=attempts)


def test_question_weight():
    assert question_weight(None) == 3
    assert question_weight(_m(100)) == 1
    assert question_weight(_m(75)) == 2
    assert question_weight(_m(0)) == 5


def test_presentation_high_mastery_with_history():
    q = _q("q1")
    mastery = _m(90, attempts=10)
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.3)) == Presentation.OPEN
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.2)) == Presentation.MCQ


def test_presentation_high_mastery_needs_ten_attempts():
    q = _q("q1")
    mastery = _m(90, attempts=9)
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.3)) == Presentation.MCQ
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.6)) == Presentation.OPEN


def test_presentation_mid_mastery():
    q = _q("q1")
    mastery = _m(70, attempts=3)
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.51)) == Presentation.OPEN
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.5)) == Presentation.MCQ


def test_presentation_low_mastery():
    q = _q("q1")
    mastery = _m(60, attempts=40)
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.95)) == Presentation.OPEN
    assert choose_presentation(q, mastery, QuizFormat.ADAPTIVE, FixedRng(0.9)) == Presentation.MCQ


def test_presentation_unknown_mastery():
    q = _q("q1")
    assert choose_presentation(q, None, QuizFormat.ADAPTIVE, FixedRng(0.85)) == Presentation.MCQ
    assert choose_presentation(q, None, QuizFormat.ADAPTIVE, FixedRng(0.95)) == Presentation.OPEN


def test_presentation_follows_fixed_formats():
    q = _q("q1")
    mastery = _m(95, attempts=50)
    assert choose_presentation(q, mastery, QuizFormat.MCQ, FixedRng(0.99)) == Presentation.MCQ
    assert choose_presentation(q, None, QuizFormat.OPEN, FixedRng(0.0)) == Presentation.OPEN


def test_native_open_question_is_always_open():
    q = _q("q1", qtype=QuestionType.OPEN)
    for quiz_format in QuizFormat:
        assert choose_presentation(q, _m(0), quiz_format, FixedRng(0.0)) == Presentation.OPEN


def test_open_share_grows_with_mastery():
    rng = random.Random(42)
    q = _q("q1")

    def open_share(mastery):
        draws = [choose_presentation(q, mastery, QuizFormat.ADAPTIVE, rng) for _ in range(2000)]
        return draws.count(Presentation.OPEN) / len(draws)

    low, mid, high = open_share(_m(30)), open_share(_m(70)), open_share(_m(90, attempts=12))
    assert low < mid < high
    assert 0.05 < low < 0.15
    assert 0.75 < high < 0.85


def test_build_quiz_respects_length():
    pool = [_q(f"q{i}") for i in range(10)]
    assert len(build_quiz(pool, {}, QuizFormat.ADAPTIVE, None, 4)) == 4


def test_build_quiz_returns_all_when_pool_is_small():
    pool = [_q(f"q{i}") for i in range(3)]
    assert len(build_quiz(pool, {}, QuizFormat.MCQ, None, 10)) == 3


def test_build_quiz_length_bounds():
    pool = [_q(f"q{i}") for i in range(8)] + [_q("other", category="cat-b")]
    for length in range(1, 13):
        items = build_quiz(pool, {}, QuizFormat.ADAPTIVE, {"cat-a"}, length)
        assert len(items) == min(length, 8)


def test_build_quiz_filters_categories():
    pool = [_q("a1"), _q("b1", "cat-b"), _q("c1", "cat-c")]
    items = build_quiz(pool, {}, QuizFormat.ADAPTIVE, {"cat-b", "cat-c"}, 10)
    assert {i.question.id for i in items} == {"b1", "c1"}


def test_build_quiz_empty_filter_means_all():
    pool = [_q("a1"), _q("b1", "cat-b")]
    assert len(build_quiz(pool, {}, QuizFormat.ADAPTIVE, set(), 10)) == 2


def test_build_quiz_mcq_only():
    pool = [_q("m1"), _q("o1", qtype=QuestionType.OPEN), _q("m2")]
    items = build_quiz(pool, {}, QuizFormat.MCQ, None, 10, rng=random.Random(1))
    assert {i.question.id for i in items} == {"m1", "m2"}
    assert all(i.presentation == Presentation.MCQ for i in items)


def test_build_quiz_open_only():
    pool = [_q("m1"), _q("o1", qtype=QuestionType.OPEN), _q("o2", qtype=QuestionType.OPEN)]
    items = build_quiz(pool, {}, QuizFormat.OPEN, None, 10, rng=random.Random(1))
    assert {i.question.id for i in items} == {"o1", "o2"}
    assert all(i.is_open for i in items)


def test_build_quiz_adaptive_puts_weak_categories_first():
    pool = (
        [_q(f"strong{i}", "strong") for i in range(3)]
        + [_q(f"unknown{i}", "unknown") for i in range(3)]
        + [_q(f"weak{i}", "weak") for i in range(3)]
    )
    mastery = {"strong": _m(90, 12, "strong"), "weak": _m(10, 12, "weak")}
    items = build_quiz(pool, mastery, QuizFormat.ADAPTIVE, None, 9, rng=random.Random(3))
    assert [i.question.category_id for i in items] == ["weak"] * 3 + ["unknown"] * 3 + ["strong"] * 3
    assert [i.question.category_id for i in build_quiz(pool, mastery, QuizFormat.ADAPTIVE, None, 4)] == (
        ["weak"] * 3 + ["unknown"]
    )


def test_build_quiz_zero_mastery_is_not_treated_as_unknown():
    pool = [_q("u", "unknown"), _q("z", "zero")]
    mastery = {"zero": _m(0, 5, "zero")}
    items = build_quiz(pool, mastery, QuizFormat.ADAPTIVE, None, 1)
    assert items[0].question.id == "z"


def test_build_quiz_deterministic_with_seeded_rng():
    pool = [_q(f"q{i}", f"cat-{i % 3}") for i in range(12)]
    first = build_quiz(pool, {}, QuizFormat.ADAPTIVE, None, 6, rng=random.Random(7))
    second = build_quiz(pool, {}, QuizFormat.ADAPTIVE, None, 6, rng=random.Random(7))
    assert [(i.question.id, i.presentation) for i in first] == [
        (i.question.id, i.presentation) for i in second
    ]


def test_build_quiz_rejects_non_positive_length():
    with pytest.raises(InvalidArgument):
        build_quiz([_q("q1")], {}, QuizFormat.ADAPTIVE, None, 0)


def test_build_quiz_empty_pool_returns_empty():
    assert build_quiz([], {}, QuizFormat.ADAPTIVE, None, 5) == []


def test_grade_mcq():
    q = _q("q1")
    assert grade_mcq(q, 2) == AttemptResult.CORRECT
    assert grade_mcq(q, 0) == AttemptResult.WRONG


def test_grade_mcq_rejects_bad_input():
    with pytest.raises(InvalidArgument):
        grade_mcq(_q("q1"), 4)
    with pytest.raises(InvalidArgument):
        grade_mcq(_q("o1", qtype=QuestionType.OPEN), 0)


def test_get_questions(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    questions = get_questions(tmp_db, "css")
    assert len(questions) == 6
    assert all(q.topic_id == "css" for q in questions)
    layout = get_questions(tmp_db, "css", ["css-layout"])
    assert {q.id for q in layout} == {"css-q1", "css-q2"}
    mcq = next(q for q in questions if q.id == "css-q1")
    assert mcq.type == QuestionType.MCQ
    assert len(mcq.choices) == 4
    assert mcq.correct_choice_index == 1


def test_get_questions_empty_db(tmp_db):
    init_db(tmp_db)
    assert get_questions(tmp_db, "css") == []


def test_record_quiz_answer(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    q = next(q for q in get_questions(tmp_db, "html") if q.id == "html-q1")
    mastery = record_quiz_answer(tmp_db, USER, q, AttemptResult.CORRECT, now=NOW, time_spent_seconds=12)
    assert mastery.mastery_score == 100
    conn = get_connection(tmp_db)
    row = conn.execute("SELECT * FROM attempts WHERE question_id = 'html-q1'").fetchone()
    conn.close()
    assert row["result"] == "correct"
    assert row["item_type"] == "question"
    assert row["time_spent_seconds"] == 12
    assert row["user_id"] == USER


def test_record_quiz_answer_unknown_question_propagates(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    ghost = _q("ghost", category="react-hooks")
    with pytest.raises(sqlite3.IntegrityError):
        record_quiz_answer(tmp_db, USER, ghost, AttemptResult.CORRECT, now=NOW)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM category_mastery").fetchone()[0] == 0
    conn.close()


def test_record_quiz_answer_rejects_flashcard_result(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    q = get_questions(tmp_db, "html")[0]
    with pytest.raises(InvalidArgument):
        record_quiz_answer(tmp_db, USER, q, AttemptResult.KNEW, now=NOW)


def test_record_quiz_answer_accepts_naive_time(tmp_db):
    """Naive timestamps are read as UTC, like stored ones."""
    init_db(tmp_db)
    seed_all(tmp_db)
    q = next(q for q in get_questions(tmp_db, "html") if q.id == "html-q1")
    record_quiz_answer(tmp_db, USER, q, AttemptResult.CORRECT, now=NOW)
    naive_later = datetime(2026, 3, 2, 9, 0) + timedelta(hours=1)
    mastery = record_quiz_answer(tmp_db, USER, q, AttemptResult.WRONG, now=naive_later)
    assert mastery.attempts_count == 2
    assert mastery.last_studied_at == NOW + timedelta(hours=1)


def test_search_questions_matches_any_text_field(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    assert [q.id for q in search_questions(tmp_db, "react", query="USEEFFECT")] == [
        "react-q1", "react-q2",
    ]
    # answer only
    assert [q.id for q in search_questions(tmp_db, "react", query="unmount")] == ["react-q2"]
    # explanation only
    assert [q.id for q in search_questions(tmp_db, "react", query="closure")] == ["react-q6"]


def test_search_questions_filters_by_category(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    everywhere = search_questions(tmp_db, "react", query="render")
    assert [q.id for q in everywhere] == ["react-q1", "react-q3", "react-q4", "react-q5"]
    hooks = search_questions(tmp_db, "react", "react-hooks", "render")
    assert [q.id for q in hooks] == ["react-q1", "react-q3"]


def test_search_questions_blank_query_lists_category(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    assert len(search_questions(tmp_db, "react")) == 6
    assert [q.id for q in search_questions(tmp_db, "react", "react-state", "  ")] == ["react-q6"]
    assert search_questions(tmp_db, "react", query="no such phrase") == []
