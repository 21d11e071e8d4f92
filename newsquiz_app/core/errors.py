"""Error types raised by the quiz core.

Every error carries a ``kind`` so callers can translate it into a user-facing
outcome (HTTP status, message) without inspecting the message text.
"""

from __future__ import annotations

NOT_FOUND = "not_found"
CONFLICT = "conflict"
FORBIDDEN = "forbidden"
VALIDATION = "validation"


class QuizError(Exception):
    """Base class for all core errors."""

    kind: str = VALIDATION
    default_message: str = "Quiz operation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NoSuchQuizError(QuizError):
    kind = NOT_FOUND
    default_message = "No such quiz."


class NoSuchQuestionError(QuizError):
    kind = NOT_FOUND
    default_message = "No such question."


class NoSuchAlternativeError(QuizError):
    kind = NOT_FOUND
    default_message = "No such answer alternative."


class NoSuchUserError(QuizError):
    kind = NOT_FOUND
    default_message = "No such user."


class NoOpenQuizError(QuizError):
    kind = NOT_FOUND
    default_message = "No quiz is open right now."


class NoMoreQuestionsError(QuizError):
    """The participant has answered every question of the quiz."""

    kind = NOT_FOUND
    default_message = "No more questions."


class QuestionAlreadyAnsweredError(QuizError):
    """Raised by the store when a (user, question) answer already exists."""

    kind = CONFLICT
    default_message = "Question already answered."


class ArticleAlreadyInQuizError(QuizError):
    kind = CONFLICT
    default_message = "Article is already in quiz."


class ForbiddenQuizError(QuizError):
    """Guests may only interact with the currently open quiz."""

    kind = FORBIDDEN
    default_message = "Cannot answer question in non-open quiz without being authenticated."


class AnswerValidationError(QuizError):
    kind = VALIDATION
    default_message = "Answer alternative does not belong to the question."


class QuizValidationError(QuizError):
    kind = VALIDATION
    default_message = "Invalid quiz data."
