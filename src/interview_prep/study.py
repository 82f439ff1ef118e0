"""Study session state and user settings."""
from collections import defaultdict
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from interview_prep.db import get_connection
from interview_prep.errors import InvalidArgument
from interview_prep.models import AttemptResult, Flashcard, QuizItem

DEFAULT_QUIZ_LENGTH = 10
DEFAULT_FLASHCARD_SESSION_SIZE = 10
DEFAULT_QUIZ_FORMAT = "adaptive"

T = TypeVar("T", QuizItem, Flashcard)


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_quiz_length(db_path: str) -> int:
    return int(get_setting(db_path, "quiz_length", str(DEFAULT_QUIZ_LENGTH)))


def get_flashcard_session_size(db_path: str) -> int:
    return int(get_setting(db_path, "flashcard_session_size", str(DEFAULT_FLASHCARD_SESSION_SIZE)))


def get_quiz_format(db_path: str) -> str:
    return get_setting(db_path, "quiz_format", DEFAULT_QUIZ_FORMAT)


@dataclass(frozen=True)
class InProgress:
    index: int


@dataclass(frozen=True)
class Complete:
    pass


SessionState = Union[InProgress, Complete]


class StudySession(Generic[T]):
    """A fixed, ordered run through quiz items or flashcards.

    The session moves InProgress(0) -> InProgress(1) -> ... -> Complete,
    one explicit ``advance()`` at a time, and each item must receive a
    recorded result before the session moves past it.
    """

    def __init__(self, items: list[T]):
        if not items:
            raise InvalidArgument("a session needs at least one item")
        self.items = list(items)
        self.results: list[tuple[T, AttemptResult]] = []
        self.state: SessionState = InProgress(0)

    @property
    def is_complete(self) -> bool:
        return isinstance(self.state, Complete)

    @property
    def current(self) -> Optional[T]:
        if self.is_complete:
            return None
        return self.items[self.state.index]

    @property
    def progress(self) -> float:
        """Share of items answered, 0-100."""
        return len(self.results) / len(self.items) * 100

    def record(self, result: AttemptResult) -> None:
        if self.is_complete:
            raise InvalidArgument("session is already complete")
        if len(self.results) > self.state.index:
            raise InvalidArgument("current item already has a result")
        self.results.append((self.current, AttemptResult(result)))

    def advance(self) -> SessionState:
        if self.is_complete:
            raise InvalidArgument("session is already complete")
        if len(self.results) <= self.state.index:
            raise InvalidArgument("record a result before advancing")
        next_index = self.state.index + 1
        self.state = InProgress(next_index) if next_index < len(self.items) else Complete()
        return self.state

    def summary(self) -> dict:
        correct = sum(1 for _, result in self.results if result.is_success)
        total = len(self.results)
        accuracy = round(correct / total * 100) if total else 0
        breakdown = defaultdict(lambda: {"correct": 0, "total": 0})
        for item, result in self.results:
            entry = breakdown[_category_of(item)]
            entry["total"] += 1
            if result.is_success:
                entry["correct"] += 1
        return {
            "correct": correct,
            "total": total,
            "accuracy": accuracy,
            "message": get_score_message(accuracy),
            "by_category": dict(breakdown),
        }


def _category_of(item) -> str:
    if isinstance(item, QuizItem):
        return item.question.category_id
    return item.category_id


def get_score_message(accuracy: float) -> str:
    if accuracy >= 90:
        return "Outstanding! You're crushing it!"
    elif accuracy >= 70:
        return "Great job! Keep practicing!"
    elif accuracy >= 50:
        return "Good effort! Room for improvement."
    return "Keep studying, you'll get there!"
