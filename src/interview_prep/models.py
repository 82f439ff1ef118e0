"""Data classes for the study domain model."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class TopicId(str, Enum):
    REACT = "react"
    JAVASCRIPT = "javascript"
    CSS = "css"
    HTML = "html"


TOPICS = {
    TopicId.REACT: "React",
    TopicId.JAVASCRIPT: "JavaScript",
    TopicId.CSS: "CSS",
    TopicId.HTML: "HTML",
}


class ItemType(str, Enum):
    QUESTION = "question"
    FLASHCARD = "flashcard"


class AttemptResult(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"
    SELF_CORRECT = "self_correct"
    SELF_WRONG = "self_wrong"
    DONT_KNOW = "dont_know"
    KNEW = "knew"
    DIDNT_KNOW = "didnt_know"

    @property
    def is_success(self) -> bool:
        return self in SUCCESS_RESULTS


SUCCESS_RESULTS = frozenset(
    {AttemptResult.CORRECT, AttemptResult.SELF_CORRECT, AttemptResult.KNEW}
)


class QuestionType(str, Enum):
    MCQ = "mcq"
    OPEN = "open"


class Presentation(str, Enum):
    MCQ = "mcq"
    OPEN = "open"


class QuizFormat(str, Enum):
    ADAPTIVE = "adaptive"
    MCQ = "mcq"
    OPEN = "open"


@dataclass
class Category:
    id: str
    topic_id: str
    name: str


@dataclass
class Question:
    id: str
    topic_id: str
    category_id: str
    type: QuestionType
    prompt: str
    choices: Optional[list[str]] = None
    correct_choice_index: Optional[int] = None
    answer: Optional[str] = None
    explanation: Optional[str] = None
    difficulty: Optional[int] = None


@dataclass
class Flashcard:
    id: str
    topic_id: str
    category_id: str
    front: str
    back: str


@dataclass(frozen=True)
class AttemptRecord:
    id: str
    user_id: str
    item_type: ItemType
    result: AttemptResult
    created_at: datetime
    question_id: Optional[str] = None
    flashcard_id: Optional[str] = None
    time_spent_seconds: Optional[int] = None

    @property
    def item_id(self) -> str:
        if self.item_type == ItemType.QUESTION:
            return self.question_id
        return self.flashcard_id


@dataclass
class FlashcardScheduleState:
    next_review_at: datetime
    ease_factor: float = 2.5
    interval_days: int = 0
    repetitions: int = 0
    last_reviewed_at: Optional[datetime] = None

    @classmethod
    def new(cls, now: datetime) -> "FlashcardScheduleState":
        """Default state for a card that has never been reviewed."""
        return cls(next_review_at=now)


@dataclass
class CategoryMastery:
    category_id: str
    mastery_score: int = 0
    attempts_count: int = 0
    rolling_accuracy: Optional[float] = None
    last_studied_at: Optional[datetime] = None


@dataclass
class QuizItem:
    question: Question
    presentation: Presentation

    @property
    def is_open(self) -> bool:
        return self.presentation == Presentation.OPEN
