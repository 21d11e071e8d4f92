"""Service deciding which question a participant sees next."""

from __future__ import annotations

from uuid import UUID

from newsquiz_app.core.errors import NoMoreQuestionsError, NoSuchQuestionError, NoSuchQuizError, QuizValidationError
from newsquiz_app.core.models import QuestionProgress
from newsquiz_app.core.services.answer_ledger import AnswerLedger
from newsquiz_app.core.services.open_quiz import OpenQuizResolver
from newsquiz_app.core.services.quiz_catalog import QuizCatalog


class QuizProgression:
    """Read-only projection of the answer ledger onto a quiz's question order."""

    def __init__(self, catalog: QuizCatalog, ledger: AnswerLedger, resolver: OpenQuizResolver) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._resolver = resolver

    def next_question(self, user_id: UUID, quiz_id: UUID) -> QuestionProgress:
        """Return the first question in arrangement order the user has not answered.

        Raises ``NoSuchQuizError`` for unknown or deleted quizzes and
        ``NoMoreQuestionsError`` once every question is answered.
        """
        quiz = self._catalog.get_quiz(quiz_id)
        answered = self._ledger.answered_question_ids(user_id, quiz_id)
        total = len(quiz.questions)
        for position, question in enumerate(quiz.questions, start=1):
            if question.id not in answered:
                return QuestionProgress(quiz_id=quiz.id, question=question, position=position, total=total)
        raise NoMoreQuestionsError()

    def question_at_position(self, quiz_id: UUID, position: int) -> QuestionProgress:
        """Guest flow: the question at a 1-based position of the open quiz.

        Guests have no ledger, so the client tells us how far it has come.
        """
        if position < 1:
            raise QuizValidationError("Question number must be 1 or higher.")
        if quiz_id != self._resolver.get_open_quiz_id():
            raise NoSuchQuizError("No open quiz with the given id.")
        quiz = self._catalog.get_quiz(quiz_id)
        if position > len(quiz.questions):
            raise NoSuchQuestionError("No question with the given number.")
        return QuestionProgress(
            quiz_id=quiz.id,
            question=quiz.questions[position - 1],
            position=position,
            total=len(quiz.questions),
        )
