"""Service for user records used by the quiz: ranking opt-in, usernames, roles."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

from newsquiz_app.core.errors import NoSuchUserError, QuizValidationError
from newsquiz_app.core.models import User, UserRole
from newsquiz_app.core.name_assigner import NameAssigner
from newsquiz_app.core.store import QuizStore

logger = logging.getLogger(__name__)


class UserDirectory:
    def __init__(self, store: QuizStore, name_assigner: NameAssigner) -> None:
        self._store = store
        self._names = name_assigner

    def create_user(
        self,
        email: str,
        phone: str = "",
        opt_in_ranking: bool = False,
        role: UserRole = UserRole.USER,
        user_id: UUID | None = None,
    ) -> User:
        cleaned_email = email.strip()
        if "@" not in cleaned_email:
            raise QuizValidationError("Invalid email address.")
        user = User(
            id=user_id or uuid4(),
            email=cleaned_email,
            phone=phone.strip(),
            opt_in_ranking=opt_in_ranking,
            role=role,
        )
        return self._store.add_user(user)

    def get_user(self, user_id: UUID) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise NoSuchUserError()
        return user

    def set_opt_in_ranking(self, user_id: UUID, opt_in: bool) -> User:
        self._update(user_id, opt_in_ranking=opt_in)
        return self.get_user(user_id)

    def set_role(self, user_id: UUID, role: UserRole) -> User:
        self._update(user_id, role=role)
        return self.get_user(user_id)

    def assign_username(self, user_id: UUID) -> str:
        """Give the user a random username no other user has.

        Names lost to a concurrent claim are skipped like taken ones.
        """
        self.get_user(user_id)
        for _ in range(self._names.pool_size):
            candidate = self._names.next_name()
            if self._store.claim_username(user_id, candidate):
                logger.info("Assigned username %r to user %s", candidate, user_id)
                return candidate
        raise RuntimeError("No unused usernames left to assign.")

    def _update(self, user_id: UUID, **changes: object) -> None:
        if not self._store.update_user(user_id, changes):
            raise NoSuchUserError()
