"""SQLAlchemy implementation of the QuizStore port.

The answer ledger relies on ``uq_user_answers_user_question``, question
ordering on ``uq_questions_quiz_arrangement`` and usernames on
``uq_users_username``. All three are enforced by the database, so concurrent
writers cannot break them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
import logging
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    create_engine,
    func,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from newsquiz_app.core.errors import (
    ArticleAlreadyInQuizError,
    NoSuchQuizError,
    NoSuchUserError,
    QuestionAlreadyAnsweredError,
)
from newsquiz_app.core.models import (
    Article,
    AnswerAlternative,
    Question,
    Quiz,
    User,
    UserAnswer,
    UserRole,
)
from newsquiz_app.core.store import (
    QUIZ_UPDATABLE_FIELDS,
    USER_UPDATABLE_FIELDS,
    NewAlternative,
    QuizStore,
    check_changes,
)
from newsquiz_app.utils.clock import as_utc

logger = logging.getLogger(__name__)

MAX_ARRANGEMENT_ATTEMPTS = 5
ARRANGEMENT_CONSTRAINT = "uq_questions_quiz_arrangement"
USERNAME_CONSTRAINT = "uq_users_username"


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("username", name=USERNAME_CONSTRAINT),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False, default="")
    opt_in_ranking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=UserRole.USER.value)
    username: Mapped[str | None] = mapped_column(String(128))
    access_token: Mapped[str | None] = mapped_column(Text)
    token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refresh_token: Mapped[str | None] = mapped_column(Text)
    refresh_token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class ArticleRow(Base):
    __tablename__ = "articles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    image_url: Mapped[str | None] = mapped_column(Text)


class QuizRow(Base):
    __tablename__ = "quizzes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text)
    available_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    available_to: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class QuizArticleRow(Base):
    __tablename__ = "quiz_articles"

    quiz_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True)
    article_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class QuestionRow(Base):
    __tablename__ = "questions"
    __table_args__ = (UniqueConstraint("quiz_id", "arrangement", name=ARRANGEMENT_CONSTRAINT),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    quiz_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    arrangement: Mapped[int] = mapped_column(Integer, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    article_id: Mapped[UUID | None] = mapped_column(Uuid, ForeignKey("articles.id", ondelete="SET NULL"))

    alternatives: Mapped[list[AlternativeRow]] = relationship(
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="AlternativeRow.position",
        lazy="selectin",
    )


class AlternativeRow(Base):
    __tablename__ = "answer_alternatives"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    question_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    question: Mapped[QuestionRow] = relationship(back_populates="alternatives")


class AnswerRow(Base):
    __tablename__ = "user_answers"
    __table_args__ = (UniqueConstraint("user_id", "question_id", name="uq_user_answers_user_question"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    answer_alternative_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("answer_alternatives.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def create_sql_store(database_url: str, echo: bool = False) -> SqlStore:
    """Create an engine for ``database_url``, create missing tables and wrap it."""
    kwargs: dict[str, object] = {"echo": echo}
    if database_url.startswith("sqlite") and (":memory:" in database_url or database_url.rstrip("/") == "sqlite:"):
        # One shared connection, otherwise every pooled connection gets its own empty database.
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    return SqlStore(engine)


class SqlStore(QuizStore):
    """Store backed by a relational database through SQLAlchemy."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = sessionmaker(engine, expire_on_commit=False)

    # -- Quizzes ---------------------------------------------------------
    def add_quiz(self, quiz: Quiz) -> Quiz:
        with self._sessions.begin() as session:
            row = QuizRow(
                id=quiz.id,
                title=quiz.title,
                image_url=quiz.image_url,
                available_from=quiz.available_from,
                available_to=quiz.available_to,
                created_at=quiz.created_at,
                last_modified_at=quiz.last_modified_at,
                published=quiz.published,
                is_deleted=quiz.is_deleted,
            )
            session.add(row)
            return _quiz_from_row(row)

    def get_quiz(self, quiz_id: UUID, include_questions: bool = True) -> Quiz | None:
        with self._sessions() as session:
            row = session.get(QuizRow, quiz_id)
            if row is None:
                return None
            quiz = _quiz_from_row(row)
            if include_questions:
                quiz.questions = self._select_questions(session, quiz_id)
            return quiz

    def list_quizzes(self, include_deleted: bool = False) -> list[Quiz]:
        stmt = select(QuizRow).order_by(QuizRow.available_from, QuizRow.created_at)
        if not include_deleted:
            stmt = stmt.where(QuizRow.is_deleted.is_(False))
        with self._sessions() as session:
            return [_quiz_from_row(row) for row in session.scalars(stmt)]

    def update_quiz(self, quiz_id: UUID, changes: Mapping[str, object]) -> bool:
        check_changes(changes, QUIZ_UPDATABLE_FIELDS)
        with self._sessions.begin() as session:
            row = session.get(QuizRow, quiz_id)
            if row is None:
                return False
            for name, value in changes.items():
                setattr(row, name, value)
            return True

    def find_open_quizzes(self, now: datetime) -> list[Quiz]:
        stmt = select(QuizRow).where(
            QuizRow.published.is_(True),
            QuizRow.is_deleted.is_(False),
            QuizRow.available_from <= now,
            QuizRow.available_to > now,
        )
        with self._sessions() as session:
            return [_quiz_from_row(row) for row in session.scalars(stmt)]

    # -- Questions -------------------------------------------------------
    def insert_question(
        self,
        quiz_id: UUID,
        text: str,
        points: int,
        alternatives: Sequence[NewAlternative],
        article_id: UUID | None = None,
    ) -> Question:
        for attempt in range(1, MAX_ARRANGEMENT_ATTEMPTS + 1):
            try:
                with self._sessions.begin() as session:
                    return self._insert_question(session, quiz_id, text, points, alternatives, article_id)
            except IntegrityError as exc:
                if not _violates(exc, ARRANGEMENT_CONSTRAINT, "questions.quiz_id, questions.arrangement"):
                    raise
                logger.warning(
                    "Arrangement conflict for quiz %s (attempt %d/%d), retrying",
                    quiz_id,
                    attempt,
                    MAX_ARRANGEMENT_ATTEMPTS,
                )
        raise RuntimeError(f"Could not assign an arrangement for quiz {quiz_id}")

    @staticmethod
    def _insert_question(
        session: Session,
        quiz_id: UUID,
        text: str,
        points: int,
        alternatives: Sequence[NewAlternative],
        article_id: UUID | None,
    ) -> Question:
        # Row lock serializes writers per quiz where the backend supports it.
        quiz = session.scalar(select(QuizRow.id).where(QuizRow.id == quiz_id).with_for_update())
        if quiz is None:
            raise NoSuchQuizError()
        next_arrangement = (
            select(func.coalesce(func.max(QuestionRow.arrangement), 0) + 1)
            .where(QuestionRow.quiz_id == quiz_id)
            .correlate(None)
            .scalar_subquery()
        )
        question_id = uuid4()
        session.execute(
            insert(QuestionRow).values(
                id=question_id,
                quiz_id=quiz_id,
                text=text,
                arrangement=next_arrangement,
                points=points,
                article_id=article_id,
            )
        )
        session.add_all(
            AlternativeRow(
                id=uuid4(),
                question_id=question_id,
                text=alt.text,
                correct=alt.is_correct,
                position=index,
            )
            for index, alt in enumerate(alternatives)
        )
        session.flush()
        return _question_from_row(session.get(QuestionRow, question_id))

    def list_questions(self, quiz_id: UUID) -> list[Question]:
        with self._sessions() as session:
            return self._select_questions(session, quiz_id)

    def get_question(self, question_id: UUID) -> Question | None:
        with self._sessions() as session:
            row = session.get(QuestionRow, question_id)
            return _question_from_row(row) if row else None

    def get_alternative(self, alternative_id: UUID) -> AnswerAlternative | None:
        with self._sessions() as session:
            row = session.get(AlternativeRow, alternative_id)
            return _alternative_from_row(row) if row else None

    @staticmethod
    def _select_questions(session: Session, quiz_id: UUID) -> list[Question]:
        stmt = select(QuestionRow).where(QuestionRow.quiz_id == quiz_id).order_by(QuestionRow.arrangement)
        return [_question_from_row(row) for row in session.scalars(stmt)]

    # -- Answer ledger ---------------------------------------------------
    def insert_answer(
        self,
        user_id: UUID,
        question_id: UUID,
        alternative_id: UUID,
        created_at: datetime,
    ) -> UserAnswer:
        try:
            with self._sessions.begin() as session:
                row = AnswerRow(
                    id=uuid4(),
                    user_id=user_id,
                    question_id=question_id,
                    answer_alternative_id=alternative_id,
                    created_at=created_at,
                )
                session.add(row)
                session.flush()
                return _answer_from_row(row)
        except IntegrityError as exc:
            # Other integrity failures (e.g. unknown user) are not conflicts.
            if self._answer_exists(user_id, question_id):
                raise QuestionAlreadyAnsweredError() from exc
            raise

    def _answer_exists(self, user_id: UUID, question_id: UUID) -> bool:
        stmt = select(AnswerRow.id).where(AnswerRow.user_id == user_id, AnswerRow.question_id == question_id)
        with self._sessions() as session:
            return session.scalar(stmt) is not None

    def list_answers(self, user_id: UUID, quiz_id: UUID) -> list[UserAnswer]:
        stmt = (
            select(AnswerRow)
            .join(QuestionRow, QuestionRow.id == AnswerRow.question_id)
            .where(AnswerRow.user_id == user_id, QuestionRow.quiz_id == quiz_id)
            .order_by(AnswerRow.created_at)
        )
        return self._select_answers(stmt)

    def list_answers_for_quiz(self, quiz_id: UUID) -> list[UserAnswer]:
        stmt = (
            select(AnswerRow)
            .join(QuestionRow, QuestionRow.id == AnswerRow.question_id)
            .where(QuestionRow.quiz_id == quiz_id)
            .order_by(AnswerRow.created_at)
        )
        return self._select_answers(stmt)

    def list_answers_for_user(self, user_id: UUID) -> list[UserAnswer]:
        stmt = select(AnswerRow).where(AnswerRow.user_id == user_id).order_by(AnswerRow.created_at)
        return self._select_answers(stmt)

    def list_all_answers(self) -> list[UserAnswer]:
        return self._select_answers(select(AnswerRow).order_by(AnswerRow.created_at))

    def _select_answers(self, stmt) -> list[UserAnswer]:
        with self._sessions() as session:
            return [_answer_from_row(row) for row in session.scalars(stmt)]

    # -- Users -----------------------------------------------------------
    def add_user(self, user: User) -> User:
        with self._sessions.begin() as session:
            session.add(
                UserRow(
                    id=user.id,
                    email=user.email,
                    phone=user.phone,
                    opt_in_ranking=user.opt_in_ranking,
                    role=user.role.value,
                    username=user.username,
                    access_token=user.access_token,
                    token_expires_at=user.token_expires_at,
                    refresh_token=user.refresh_token,
                    refresh_token_expires_at=user.refresh_token_expires_at,
                )
            )
        return user

    def get_user(self, user_id: UUID) -> User | None:
        with self._sessions() as session:
            row = session.get(UserRow, user_id)
            return _user_from_row(row) if row else None

    def list_users(self) -> list[User]:
        with self._sessions() as session:
            return [_user_from_row(row) for row in session.scalars(select(UserRow))]

    def update_user(self, user_id: UUID, changes: Mapping[str, object]) -> bool:
        check_changes(changes, USER_UPDATABLE_FIELDS)
        with self._sessions.begin() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return False
            for name, value in changes.items():
                if isinstance(value, UserRole):
                    value = value.value
                setattr(row, name, value)
            return True

    def claim_username(self, user_id: UUID, username: str) -> bool:
        try:
            with self._sessions.begin() as session:
                row = session.get(UserRow, user_id)
                if row is None:
                    raise NoSuchUserError()
                row.username = username
                session.flush()
        except IntegrityError as exc:
            if not _violates(exc, USERNAME_CONSTRAINT, "users.username"):
                raise
            return False
        return True

    # -- Articles --------------------------------------------------------
    def add_article(self, article: Article) -> Article:
        with self._sessions.begin() as session:
            session.add(ArticleRow(id=article.id, title=article.title, url=article.url, image_url=article.image_url))
        return article

    def get_article(self, article_id: UUID) -> Article | None:
        with self._sessions() as session:
            row = session.get(ArticleRow, article_id)
            return _article_from_row(row) if row else None

    def get_article_by_url(self, url: str) -> Article | None:
        with self._sessions() as session:
            row = session.scalar(select(ArticleRow).where(ArticleRow.url == url))
            return _article_from_row(row) if row else None

    def attach_article(self, quiz_id: UUID, article_id: UUID) -> None:
        try:
            with self._sessions.begin() as session:
                if session.get(QuizRow, quiz_id) is None:
                    raise NoSuchQuizError()
                current = session.scalar(
                    select(func.max(QuizArticleRow.position)).where(QuizArticleRow.quiz_id == quiz_id)
                )
                session.add(QuizArticleRow(quiz_id=quiz_id, article_id=article_id, position=(current or 0) + 1))
        except IntegrityError as exc:
            raise ArticleAlreadyInQuizError() from exc

    def detach_article(self, quiz_id: UUID, article_id: UUID) -> bool:
        with self._sessions.begin() as session:
            row = session.get(QuizArticleRow, (quiz_id, article_id))
            if row is None:
                return False
            session.delete(row)
            return True

    def list_quiz_articles(self, quiz_id: UUID) -> list[Article]:
        stmt = (
            select(ArticleRow)
            .join(QuizArticleRow, QuizArticleRow.article_id == ArticleRow.id)
            .where(QuizArticleRow.quiz_id == quiz_id)
            .order_by(QuizArticleRow.position)
        )
        with self._sessions() as session:
            return [_article_from_row(row) for row in session.scalars(stmt)]


def _quiz_from_row(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        title=row.title,
        image_url=row.image_url,
        available_from=as_utc(row.available_from),
        available_to=as_utc(row.available_to),
        created_at=as_utc(row.created_at),
        last_modified_at=as_utc(row.last_modified_at),
        published=row.published,
        is_deleted=row.is_deleted,
    )


def _alternative_from_row(row: AlternativeRow) -> AnswerAlternative:
    return AnswerAlternative(id=row.id, question_id=row.question_id, text=row.text, is_correct=row.correct)


def _question_from_row(row: QuestionRow) -> Question:
    return Question(
        id=row.id,
        quiz_id=row.quiz_id,
        text=row.text,
        arrangement=row.arrangement,
        points=row.points,
        article_id=row.article_id,
        alternatives=[_alternative_from_row(alt) for alt in row.alternatives],
    )


def _answer_from_row(row: AnswerRow) -> UserAnswer:
    return UserAnswer(
        id=row.id,
        user_id=row.user_id,
        question_id=row.question_id,
        alternative_id=row.answer_alternative_id,
        created_at=as_utc(row.created_at),
    )


def _user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        phone=row.phone,
        opt_in_ranking=row.opt_in_ranking,
        role=UserRole.from_string(row.role),
        username=row.username,
        access_token=row.access_token,
        token_expires_at=as_utc(row.token_expires_at) if row.token_expires_at else None,
        refresh_token=row.refresh_token,
        refresh_token_expires_at=as_utc(row.refresh_token_expires_at) if row.refresh_token_expires_at else None,
    )


def _article_from_row(row: ArticleRow) -> Article:
    return Article(id=row.id, url=row.url, title=row.title, image_url=row.image_url)


def _violates(exc: IntegrityError, constraint: str, columns: str) -> bool:
    """True when ``exc`` reports the given unique constraint.

    PostgreSQL drivers expose the constraint name; SQLite only names the columns.
    """
    diag = getattr(exc.orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", None):
        return diag.constraint_name == constraint
    message = str(exc.orig)
    return constraint in message or columns in message
