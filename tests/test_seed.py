from interview_prep.db import init_db, get_connection
from interview_prep.models import TOPICS
from interview_prep.seed import (
    get_categories, is_seeded, load_topic_content, seed_all, seed_topic_content, seed_topics,
)


def test_seed_topics(tmp_db):
    init_db(tmp_db)
    seed_topics(tmp_db)
    conn = get_connection(tmp_db)
    topics = conn.execute("SELECT * FROM topics ORDER BY id").fetchall()
    assert [t["id"] for t in topics] == ["css", "html", "javascript", "react"]
    conn.close()


def test_seed_topic_content(tmp_db):
    init_db(tmp_db)
    seed_topics(tmp_db)
    counts = seed_topic_content(tmp_db, "react")
    assert counts == {"categories": 3, "questions": 6, "flashcards": 5}
    conn = get_connection(tmp_db)
    q = conn.execute("SELECT * FROM questions WHERE id = 'react-q1'").fetchone()
    assert q["type"] == "mcq"
    assert q["category_id"] == "react-hooks"
    conn.close()


def test_is_seeded(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_all(tmp_db)
    assert is_seeded(tmp_db)


def test_seed_all_counts(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM topics").fetchone()[0] == 4
    assert conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0] == 12
    assert conn.execute("SELECT COUNT(*) FROM questions").fetchone()[0] == 24
    assert conn.execute("SELECT COUNT(*) FROM flashcards").fetchone()[0] == 20
    conn.close()


def test_seed_all_is_idempotent(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    seed_all(tmp_db)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM questions").fetchone()[0] == 24
    conn.close()


def test_bundled_content_is_consistent():
    """Every question and card points at a category of its own topic; MCQs are answerable."""
    for topic_id in TOPICS:
        data = load_topic_content(topic_id.value)
        category_ids = {c["id"] for c in data["categories"]}
        for q in data["questions"]:
            assert q["category_id"] in category_ids
            if q["type"] == "mcq":
                assert 0 <= q["correct_choice_index"] < len(q["choices"])
            else:
                assert q["answer"]
        for card in data["flashcards"]:
            assert card["category_id"] in category_ids


def test_get_categories(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    categories = get_categories(tmp_db, "react")
    assert [c.name for c in categories] == ["Hooks", "Rendering", "State Management"]
    assert all(c.topic_id == "react" for c in categories)
