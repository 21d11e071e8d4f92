"""Domain models for the news quiz."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """Access level of a user. Only consulted for admin gating."""

    USER = "user"
    QUIZ_ADMIN = "quiz_admin"
    ORGANIZATION_ADMIN = "organization_admin"

    @classmethod
    def from_string(cls, value: str) -> UserRole:
        try:
            return cls(value)
        except ValueError:
            return cls.USER

    def is_administrator(self) -> bool:
        return self in (UserRole.QUIZ_ADMIN, UserRole.ORGANIZATION_ADMIN)


@dataclass(slots=True)
class Article:
    """News article a question or quiz can point to."""

    id: UUID
    url: str
    title: str = ""
    image_url: str | None = None


@dataclass(slots=True)
class AnswerAlternative:
    """One selectable answer of a question."""

    id: UUID
    question_id: UUID
    text: str
    is_correct: bool


@dataclass(slots=True)
class Question:
    """Question within a quiz. Arrangement is assigned by the store."""

    id: UUID
    quiz_id: UUID
    text: str
    arrangement: int
    points: int
    alternatives: list[AnswerAlternative] = field(default_factory=list)
    article_id: UUID | None = None

    def correct_alternative(self) -> AnswerAlternative | None:
        return next((alt for alt in self.alternatives if alt.is_correct), None)

    def get_alternative(self, alternative_id: UUID) -> AnswerAlternative | None:
        return next((alt for alt in self.alternatives if alt.id == alternative_id), None)

    def is_answer_correct(self, alternative_id: UUID) -> bool:
        alternative = self.get_alternative(alternative_id)
        return alternative is not None and alternative.is_correct

    def get_answer_text(self, alternative_id: UUID) -> str:
        alternative = self.get_alternative(alternative_id)
        return alternative.text if alternative else ""


@dataclass(slots=True)
class Quiz:
    """Quiz metadata plus its questions ordered by arrangement."""

    id: UUID
    title: str
    available_from: datetime
    available_to: datetime
    created_at: datetime
    last_modified_at: datetime
    image_url: str | None = None
    published: bool = False
    is_deleted: bool = False
    questions: list[Question] = field(default_factory=list)

    def is_open(self, now: datetime) -> bool:
        """True when guests may play this quiz at ``now``."""
        return (
            self.published
            and not self.is_deleted
            and self.available_from <= now < self.available_to
        )

    def max_points(self) -> int:
        return sum(question.points for question in self.questions)


@dataclass(slots=True)
class User:
    """Participant or administrator. Token fields are owned by the auth layer."""

    id: UUID
    email: str
    phone: str = ""
    opt_in_ranking: bool = False
    role: UserRole = UserRole.USER
    username: str | None = None
    access_token: str | None = None
    token_expires_at: datetime | None = None
    refresh_token: str | None = None
    refresh_token_expires_at: datetime | None = None


@dataclass(slots=True)
class UserAnswer:
    """Ledger entry: the alternative a user chose for a question."""

    id: UUID
    user_id: UUID
    question_id: UUID
    alternative_id: UUID
    created_at: datetime


@dataclass(slots=True)
class QuestionProgress:
    """Question to present, with its place in the quiz ("3 of 10")."""

    quiz_id: UUID
    question: Question
    position: int
    total: int


@dataclass(slots=True)
class FeedbackSummary:
    """Result of one submitted answer, handed to the presentation layer."""

    question_id: UUID
    question_text: str
    max_points: int
    chosen_alternative_id: UUID
    chosen_alternative_text: str
    correct_alternative_id: UUID | None
    is_correct: bool
    points_awarded: int
    answer_time_ms: float | None = None  # Guest telemetry only


@dataclass(slots=True)
class QuizSummary:
    """Running score of one user in one quiz."""

    quiz_id: UUID
    quiz_title: str
    answered: list[FeedbackSummary]
    total_questions: int
    points_awarded: int
    max_points: int
    last_answered_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.total_questions > 0 and len(self.answered) >= self.total_questions


@dataclass(slots=True)
class LeaderboardRow:
    """Immutable leaderboard snapshot row."""

    rank: int
    user_id: UUID
    display_name: str
    points: int
    answered_questions: int
