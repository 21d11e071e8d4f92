"""Service for answer submission, scoring and per-quiz summaries."""

from __future__ import annotations

from datetime import datetime
import logging
from uuid import UUID

from newsquiz_app.core.errors import AnswerValidationError, ForbiddenQuizError
from newsquiz_app.core.models import AnswerAlternative, FeedbackSummary, Question, Quiz, QuizSummary, UserAnswer
from newsquiz_app.core.services.answer_ledger import AnswerLedger
from newsquiz_app.core.services.open_quiz import OpenQuizResolver
from newsquiz_app.core.services.question_bank import QuestionBank
from newsquiz_app.core.services.quiz_catalog import QuizCatalog
from newsquiz_app.utils.clock import Clock, as_utc, utc_now

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Validates answers, writes them to the ledger and builds feedback.

    Scoring is all-or-nothing: a correct answer earns the question's full
    points, anything else earns zero. Answer time never affects points.
    """

    def __init__(
        self,
        catalog: QuizCatalog,
        bank: QuestionBank,
        ledger: AnswerLedger,
        resolver: OpenQuizResolver,
        clock: Clock = utc_now,
    ) -> None:
        self._catalog = catalog
        self._bank = bank
        self._ledger = ledger
        self._resolver = resolver
        self._clock = clock

    def submit_answer(self, user_id: UUID, question_id: UUID, alternative_id: UUID) -> FeedbackSummary:
        """Record a signed-in user's answer.

        Raises ``QuestionAlreadyAnsweredError`` if the user already answered
        the question; the first answer is kept untouched.
        """
        question, alternative = self._resolve(question_id, alternative_id)
        self._ledger.record(user_id, question.id, alternative.id)
        return build_feedback(question, alternative.id)

    def submit_guest_answer(
        self,
        question_id: UUID,
        alternative_id: UUID,
        question_presented_at: datetime | None = None,
    ) -> FeedbackSummary:
        """Score a guest answer. Guests only play the open quiz and are not recorded."""
        question, alternative = self._resolve(question_id, alternative_id)
        if question.quiz_id != self._resolver.get_open_quiz_id():
            raise ForbiddenQuizError()

        answer_time_ms = None
        if question_presented_at is not None:
            elapsed = self._clock() - as_utc(question_presented_at)
            answer_time_ms = max(0.0, elapsed.total_seconds() * 1000)
            logger.info("Guest answered question %s after %.0f ms", question.id, answer_time_ms)

        feedback = build_feedback(question, alternative.id)
        feedback.answer_time_ms = answer_time_ms
        return feedback

    def quiz_summary(self, user_id: UUID, quiz_id: UUID) -> QuizSummary:
        quiz = self._catalog.get_quiz(quiz_id)
        return summarize(quiz, self._ledger.answers_in_quiz(user_id, quiz_id))

    def completed_quizzes(self, user_id: UUID) -> list[QuizSummary]:
        """Summaries of every quiz the user has finished, most recent first."""
        answered_quiz_ids: list[UUID] = []
        for answer in self._ledger.answers_for_user(user_id):
            quiz_id = self._bank.get_question(answer.question_id).quiz_id
            if quiz_id not in answered_quiz_ids:
                answered_quiz_ids.append(quiz_id)

        summaries = []
        for quiz in self._catalog.list_quizzes():
            if quiz.id not in answered_quiz_ids:
                continue
            summary = self.quiz_summary(user_id, quiz.id)
            if summary.is_completed:
                summaries.append(summary)
        return sorted(summaries, key=lambda s: s.last_answered_at, reverse=True)

    def _resolve(self, question_id: UUID, alternative_id: UUID) -> tuple[Question, AnswerAlternative]:
        question = self._bank.get_question(question_id)
        self._catalog.get_quiz(question.quiz_id, include_questions=False)
        alternative = self._bank.get_alternative(alternative_id)
        if alternative.question_id != question.id:
            raise AnswerValidationError()
        return question, alternative


def build_feedback(question: Question, alternative_id: UUID) -> FeedbackSummary:
    correct = question.correct_alternative()
    is_correct = question.is_answer_correct(alternative_id)
    return FeedbackSummary(
        question_id=question.id,
        question_text=question.text,
        max_points=question.points,
        chosen_alternative_id=alternative_id,
        chosen_alternative_text=question.get_answer_text(alternative_id),
        correct_alternative_id=correct.id if correct else None,
        is_correct=is_correct,
        points_awarded=question.points if is_correct else 0,
    )


def summarize(quiz: Quiz, answers: list[UserAnswer]) -> QuizSummary:
    """Fold a user's ledger entries for ``quiz`` into a running summary."""
    by_question = {answer.question_id: answer for answer in answers}
    rows = [
        build_feedback(question, by_question[question.id].alternative_id)
        for question in quiz.questions
        if question.id in by_question
    ]
    return QuizSummary(
        quiz_id=quiz.id,
        quiz_title=quiz.title,
        answered=rows,
        total_questions=len(quiz.questions),
        points_awarded=sum(row.points_awarded for row in rows),
        max_points=quiz.max_points(),
        last_answered_at=max((answer.created_at for answer in answers), default=None),
    )
