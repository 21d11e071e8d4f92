"""Service ranking opted-in users by the points in their answer ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from newsquiz_app.constants.quiz_constants import ANONYMOUS_DISPLAY_NAME, DEFAULT_LEADERBOARD_LIMIT
from newsquiz_app.core.models import LeaderboardRow, Question
from newsquiz_app.core.services.answer_ledger import AnswerLedger
from newsquiz_app.core.services.quiz_catalog import QuizCatalog
from newsquiz_app.core.store import QuizStore


@dataclass(slots=True)
class _ScoreEntry:
    """Mutable accumulator used while folding the ledger."""

    user_id: UUID
    display_name: str
    points: int = 0
    answered_questions: int = 0
    last_answered_at: datetime | None = None


class Leaderboard:
    """Tracks nothing itself; every call recomputes from the ledger."""

    def __init__(self, store: QuizStore, catalog: QuizCatalog, ledger: AnswerLedger) -> None:
        self._store = store
        self._catalog = catalog
        self._ledger = ledger

    def get_top_scorers(self, quiz_id: UUID | None = None, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> list[LeaderboardRow]:
        """Top ``limit`` users for one quiz, or across all non-deleted quizzes."""
        if quiz_id is not None:
            quizzes = [self._catalog.get_quiz(quiz_id)]
            answers = self._ledger.answers_for_quiz(quiz_id)
        else:
            quizzes = [self._catalog.get_quiz(quiz.id) for quiz in self._catalog.list_quizzes()]
            answers = self._ledger.all_answers()

        questions: dict[UUID, Question] = {q.id: q for quiz in quizzes for q in quiz.questions}
        ranked_users = {user.id: user for user in self._store.list_users() if user.opt_in_ranking}

        scores: dict[UUID, _ScoreEntry] = {}
        for answer in answers:
            question = questions.get(answer.question_id)
            user = ranked_users.get(answer.user_id)
            if question is None or user is None:
                continue
            entry = scores.get(user.id)
            if entry is None:
                entry = _ScoreEntry(user_id=user.id, display_name=user.username or ANONYMOUS_DISPLAY_NAME)
                scores[user.id] = entry
            entry.answered_questions += 1
            if question.is_answer_correct(answer.alternative_id):
                entry.points += question.points
            if entry.last_answered_at is None or answer.created_at > entry.last_answered_at:
                entry.last_answered_at = answer.created_at

        sorted_entries = sorted(
            scores.values(),
            key=lambda e: (-e.points, -e.answered_questions, e.last_answered_at),
        )
        return [
            LeaderboardRow(
                rank=rank,
                user_id=entry.user_id,
                display_name=entry.display_name,
                points=entry.points,
                answered_questions=entry.answered_questions,
            )
            for rank, entry in enumerate(sorted_entries[:limit], start=1)
        ]
