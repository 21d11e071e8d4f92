"""Service wrapping the append-only answer ledger."""

from __future__ import annotations

import logging
from uuid import UUID

from newsquiz_app.core.errors import QuestionAlreadyAnsweredError
from newsquiz_app.core.models import UserAnswer
from newsquiz_app.core.store import QuizStore
from newsquiz_app.utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class AnswerLedger:
    """Records answers; a (user, question) pair can be recorded only once.

    Entries are never updated or deleted. Progression, summaries and the
    leaderboard are derived from them.
    """

    def __init__(self, store: QuizStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def record(self, user_id: UUID, question_id: UUID, alternative_id: UUID) -> UserAnswer:
        try:
            answer = self._store.insert_answer(
                user_id=user_id,
                question_id=question_id,
                alternative_id=alternative_id,
                created_at=self._clock(),
            )
        except QuestionAlreadyAnsweredError:
            logger.info("User %s already answered question %s", user_id, question_id)
            raise
        logger.debug("Recorded answer %s for user %s on question %s", answer.id, user_id, question_id)
        return answer

    def answers_in_quiz(self, user_id: UUID, quiz_id: UUID) -> list[UserAnswer]:
        return self._store.list_answers(user_id, quiz_id)

    def answered_question_ids(self, user_id: UUID, quiz_id: UUID) -> set[UUID]:
        return {answer.question_id for answer in self._store.list_answers(user_id, quiz_id)}

    def answers_for_quiz(self, quiz_id: UUID) -> list[UserAnswer]:
        return self._store.list_answers_for_quiz(quiz_id)

    def answers_for_user(self, user_id: UUID) -> list[UserAnswer]:
        return self._store.list_answers_for_user(user_id)

    def all_answers(self) -> list[UserAnswer]:
        return self._store.list_all_answers()
