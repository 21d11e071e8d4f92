"""FastAPI server exposing guest, player and admin endpoints."""

from __future__ import annotations

from datetime import datetime
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from newsquiz_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from newsquiz_app.constants.network_constants import API_PREFIX, DEFAULT_HOST, DEFAULT_PORT, USER_ID_HEADER
from newsquiz_app.constants.quiz_constants import DEFAULT_LEADERBOARD_LIMIT, DEFAULT_QUESTION_POINTS
from newsquiz_app.core import errors
from newsquiz_app.core.models import (
    Article,
    FeedbackSummary,
    LeaderboardRow,
    QuestionProgress,
    Quiz,
    QuizSummary,
    User,
)
from newsquiz_app.core.quiz_manager import QuizManager
from newsquiz_app.core.store import NewAlternative
from newsquiz_app.utils.clock import as_utc

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    errors.NOT_FOUND: 404,
    errors.CONFLICT: 409,
    errors.FORBIDDEN: 403,
    errors.VALIDATION: 400,
}


class AnswerPayload(BaseModel):
    """Payload schema for a signed-in user's answer."""

    answer_id: UUID


class GuestAnswerPayload(BaseModel):
    """Payload schema for a guest answer."""

    answer_id: UUID
    last_question_presented_at: datetime


class TitlePayload(BaseModel):
    title: str


class ImagePayload(BaseModel):
    image_url: str


class StartPayload(BaseModel):
    available_from: datetime


class EndPayload(BaseModel):
    available_to: datetime


class PublishedPayload(BaseModel):
    published: bool


class AlternativePayload(BaseModel):
    text: str
    correct: bool = False


class QuestionPayload(BaseModel):
    """Payload schema for authoring a question. Arrangement is assigned by the server."""

    text: str
    points: int = Field(default=DEFAULT_QUESTION_POINTS, ge=0)
    alternatives: list[AlternativePayload]
    article_id: UUID | None = None


class ArticlePayload(BaseModel):
    url: str
    title: str = ""
    image_url: str | None = None


def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def _quiz_payload(quiz: Quiz) -> dict[str, object]:
    return {
        "quiz_id": str(quiz.id),
        "title": quiz.title,
        "image_url": quiz.image_url,
        "available_from": _iso(quiz.available_from),
        "available_to": _iso(quiz.available_to),
        "published": quiz.published,
        "last_modified_at": _iso(quiz.last_modified_at),
    }


def _progress_payload(progress: QuestionProgress) -> dict[str, object]:
    # Correctness flags stay on the server until the answer is submitted.
    question = progress.question
    return {
        "quiz_id": str(progress.quiz_id),
        "question_id": str(question.id),
        "text": question.text,
        "points": question.points,
        "article_id": str(question.article_id) if question.article_id else None,
        "position": progress.position,
        "total": progress.total,
        "alternatives": [{"id": str(alt.id), "text": alt.text} for alt in question.alternatives],
    }


def _feedback_payload(feedback: FeedbackSummary) -> dict[str, object]:
    return {
        "question_id": str(feedback.question_id),
        "question_text": feedback.question_text,
        "max_points": feedback.max_points,
        "chosen_alternative_id": str(feedback.chosen_alternative_id),
        "chosen_alternative_text": feedback.chosen_alternative_text,
        "correct_alternative_id": str(feedback.correct_alternative_id) if feedback.correct_alternative_id else None,
        "is_correct": feedback.is_correct,
        "points_awarded": feedback.points_awarded,
        "answer_time_ms": feedback.answer_time_ms,
    }


def _summary_payload(summary: QuizSummary) -> dict[str, object]:
    return {
        "quiz_id": str(summary.quiz_id),
        "quiz_title": summary.quiz_title,
        "answered": [_feedback_payload(row) for row in summary.answered],
        "total_questions": summary.total_questions,
        "points_awarded": summary.points_awarded,
        "max_points": summary.max_points,
        "completed": summary.is_completed,
        "last_answered_at": _iso(summary.last_answered_at),
    }


def _article_payload(article: Article) -> dict[str, object]:
    return {
        "article_id": str(article.id),
        "url": article.url,
        "title": article.title,
        "image_url": article.image_url,
    }


def _leaderboard_payload(row: LeaderboardRow) -> dict[str, object]:
    return {
        "rank": row.rank,
        "display_name": row.display_name,
        "points": row.points,
        "answered_questions": row.answered_questions,
    }


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager.

    Authentication happens upstream; the identity layer forwards the signed-in
    user's id in the ``X-User-Id`` header. Requests without it are guests.
    """
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.exception_handler(errors.QuizError)
    async def quiz_error_handler(request: Request, exc: errors.QuizError) -> JSONResponse:
        status_code = _STATUS_BY_KIND.get(exc.kind, 400)
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "kind": exc.kind})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    def current_user(
        user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> User:
        if not user_id:
            raise HTTPException(status_code=401, detail="Authentication required")
        try:
            parsed = UUID(user_id)
        except ValueError as exc:
            raise HTTPException(status_code=401, detail="Invalid user id") from exc
        try:
            return manager.get_user(parsed)
        except errors.NoSuchUserError as exc:
            raise HTTPException(status_code=401, detail="Unknown user") from exc

    def admin_user(user: User = Depends(current_user)) -> User:
        if not user.role.is_administrator():
            raise HTTPException(status_code=403, detail="Administrator role required")
        return user

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    # --- Guest endpoints ---

    public = APIRouter(prefix=f"{API_PREFIX}/public", tags=["public"])

    @public.get("/open-quiz")
    def get_open_quiz(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        quiz = manager.get_open_quiz()
        payload = _quiz_payload(quiz)
        payload["total_questions"] = len(manager.list_questions(quiz.id))
        return payload

    @public.get("/question")
    def get_guest_question(
        quiz_id: UUID,
        current_question: int,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _progress_payload(manager.question_at_position(quiz_id, current_question))

    @public.post("/user-answer")
    def post_guest_answer(
        question_id: UUID,
        payload: GuestAnswerPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        feedback = manager.submit_guest_answer(
            question_id,
            payload.answer_id,
            question_presented_at=payload.last_question_presented_at,
        )
        return _feedback_payload(feedback)

    # --- Player endpoints ---

    quiz_api = APIRouter(prefix=f"{API_PREFIX}/quiz", tags=["quiz"])

    @quiz_api.get("/next-question")
    def get_next_question(
        quiz_id: UUID,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _progress_payload(manager.next_question(user.id, quiz_id))

    @quiz_api.post("/user-answer", status_code=201)
    def post_user_answer(
        question_id: UUID,
        payload: AnswerPayload,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _feedback_payload(manager.submit_answer(user.id, question_id, payload.answer_id))

    @quiz_api.get("/summary")
    def get_summary(
        quiz_id: UUID,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return _summary_payload(manager.get_quiz_summary(user.id, quiz_id))

    @quiz_api.get("/completed")
    def get_completed(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_summary_payload(summary) for summary in manager.get_completed_quizzes(user.id)]

    @quiz_api.get("/articles")
    def get_articles(
        quiz_id: UUID,
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_article_payload(article) for article in manager.list_used_articles(quiz_id)]

    @quiz_api.patch("/username")
    def patch_random_username(
        user: User = Depends(current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, str]:
        return {"username": manager.assign_random_username(user.id)}

    # --- Leaderboard ---

    @app.get(f"{API_PREFIX}/leaderboard")
    def get_leaderboard(
        quiz_id: UUID | None = None,
        limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=100),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [_leaderboard_payload(row) for row in manager.get_top_scorers(quiz_id, limit)]

    # --- Admin endpoints ---

    admin = APIRouter(prefix=f"{API_PREFIX}/admin/quiz", tags=["admin"], dependencies=[Depends(admin_user)])

    @admin.post("/create-new", status_code=201)
    def post_default_quiz(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return _quiz_payload(manager.create_default_quiz())

    @admin.post("/edit-title")
    def edit_quiz_title(
        quiz_id: UUID, payload: TitlePayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        return _quiz_payload(manager.update_quiz_title(quiz_id, payload.title))

    @admin.post("/edit-image")
    def edit_quiz_image(
        quiz_id: UUID, payload: ImagePayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        return _quiz_payload(manager.update_quiz_image(quiz_id, payload.image_url))

    @admin.delete("/edit-image")
    def delete_quiz_image(quiz_id: UUID, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return _quiz_payload(manager.remove_quiz_image(quiz_id))

    @admin.post("/edit-start")
    def edit_quiz_start(
        quiz_id: UUID, payload: StartPayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        return _quiz_payload(manager.update_quiz_start(quiz_id, payload.available_from))

    @admin.post("/edit-end")
    def edit_quiz_end(
        quiz_id: UUID, payload: EndPayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        return _quiz_payload(manager.update_quiz_end(quiz_id, payload.available_to))

    @admin.post("/edit-published-status")
    def edit_quiz_published(
        quiz_id: UUID, payload: PublishedPayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        return _quiz_payload(manager.set_quiz_published(quiz_id, payload.published))

    @admin.delete("/delete-quiz", status_code=204)
    def delete_quiz(quiz_id: UUID, manager: QuizManager = Depends(quiz_manager_dep)) -> None:
        manager.delete_quiz(quiz_id)

    @admin.post("/add-question", status_code=201)
    def add_question(
        quiz_id: UUID, payload: QuestionPayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        question = manager.add_question(
            quiz_id,
            payload.text,
            payload.points,
            [NewAlternative(text=alt.text, is_correct=alt.correct) for alt in payload.alternatives],
            article_id=payload.article_id,
        )
        return {
            "question_id": str(question.id),
            "arrangement": question.arrangement,
            "alternatives": [
                {"id": str(alt.id), "text": alt.text, "correct": alt.is_correct} for alt in question.alternatives
            ],
        }

    @admin.post("/add-article", status_code=201)
    def add_article(
        quiz_id: UUID, payload: ArticlePayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        article = manager.add_article_to_quiz(quiz_id, payload.url, payload.title, payload.image_url)
        return _article_payload(article)

    @admin.delete("/delete-article", status_code=204)
    def delete_article(
        quiz_id: UUID, article_id: UUID, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> None:
        if not manager.remove_article_from_quiz(quiz_id, article_id):
            raise HTTPException(status_code=404, detail="Article is not in quiz")

    app.include_router(public)
    app.include_router(quiz_api)
    app.include_router(admin)
    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API with uvicorn until interrupted."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    server.run()
