"""Service resolving the single quiz guests are allowed to play."""

from __future__ import annotations

from datetime import datetime
import logging
from uuid import UUID

from newsquiz_app.core.errors import NoOpenQuizError
from newsquiz_app.core.models import Quiz
from newsquiz_app.core.store import QuizStore
from newsquiz_app.utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class OpenQuizResolver:
    """Picks the open quiz: published, not deleted, window contains now.

    Overlapping windows should not exist, but if they do the quiz that became
    available most recently wins.
    """

    def __init__(self, store: QuizStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    def get_open_quiz(self, now: datetime | None = None) -> Quiz:
        moment = now or self._clock()
        candidates = self._store.find_open_quizzes(moment)
        if not candidates:
            raise NoOpenQuizError()
        if len(candidates) > 1:
            logger.warning(
                "%d quizzes are open at %s; choosing the most recently available",
                len(candidates),
                moment.isoformat(),
            )
        return max(candidates, key=lambda q: (q.available_from, q.created_at, str(q.id)))

    def get_open_quiz_id(self, now: datetime | None = None) -> UUID:
        return self.get_open_quiz(now).id
