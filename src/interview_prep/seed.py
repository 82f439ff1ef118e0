"""Seed the database with topics and the bundled starter question bank."""
import json
import logging
from pathlib import Path

from interview_prep.db import get_connection
from interview_prep.models import TOPICS, Category

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database has already been seeded with topics."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM topics").fetchone()[0]
    conn.close()
    return count > 0


def load_topic_content(topic_id: str) -> dict:
    return json.loads((CONTENT_DIR / f"{topic_id}.json").read_text())


def seed_topics(db_path: str) -> None:
    conn = get_connection(db_path)
    for topic_id, name in TOPICS.items():
        conn.execute(
            "INSERT OR IGNORE INTO topics (id, name) VALUES (?, ?)", (topic_id.value, name)
        )
    conn.commit()
    conn.close()


def seed_topic_content(db_path: str, topic_id: str) -> dict:
    """Insert one topic's categories, questions and flashcards."""
    data = load_topic_content(topic_id)
    conn = get_connection(db_path)
    for category in data["categories"]:
        conn.execute(
            "INSERT OR IGNORE INTO categories (id, topic_id, name) VALUES (?, ?, ?)",
            (category["id"], topic_id, category["name"]),
        )
    for q in data["questions"]:
        conn.execute(
            """INSERT OR IGNORE INTO questions
            (id, topic_id, category_id, type, prompt, choices, correct_choice_index,
             answer, explanation, difficulty)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                q["id"], topic_id, q["category_id"], q["type"], q["prompt"],
                json.dumps(q["choices"]) if q.get("choices") else None,
                q.get("correct_choice_index"), q.get("answer"), q.get("explanation"),
                q.get("difficulty"),
            ),
        )
    for card in data["flashcards"]:
        conn.execute(
            """INSERT OR IGNORE INTO flashcards (id, topic_id, category_id, front, back)
            VALUES (?, ?, ?, ?, ?)""",
            (card["id"], topic_id, card["category_id"], card["front"], card["back"]),
        )
    conn.commit()
    conn.close()
    counts = {key: len(data[key]) for key in ("categories", "questions", "flashcards")}
    logger.info("Seeded %s: %s", topic_id, counts)
    return counts


def get_categories(db_path: str, topic_id: str) -> list[Category]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM categories WHERE topic_id = ? ORDER BY name", (topic_id,)
    ).fetchall()
    conn.close()
    return [Category(id=r["id"], topic_id=r["topic_id"], name=r["name"]) for r in rows]


def seed_all(db_path: str) -> None:
    """Run all seed functions in order."""
    if is_seeded(db_path):
        return
    seed_topics(db_path)
    for topic_id in TOPICS:
        seed_topic_content(db_path, topic_id.value)
