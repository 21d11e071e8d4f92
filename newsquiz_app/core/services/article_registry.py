"""Service for the news articles attached to a quiz."""

from __future__ import annotations

from uuid import UUID, uuid4

from newsquiz_app.core.errors import QuizValidationError
from newsquiz_app.core.models import Article
from newsquiz_app.core.services.quiz_catalog import QuizCatalog
from newsquiz_app.core.store import QuizStore


class ArticleRegistry:
    def __init__(self, store: QuizStore, catalog: QuizCatalog) -> None:
        self._store = store
        self._catalog = catalog

    def add_article_to_quiz(
        self,
        quiz_id: UUID,
        url: str,
        title: str = "",
        image_url: str | None = None,
    ) -> Article:
        """Attach the article at ``url``, registering it first if it is new.

        Raises ``ArticleAlreadyInQuizError`` when the quiz already has it.
        """
        self._catalog.get_quiz(quiz_id, include_questions=False)
        cleaned_url = url.strip()
        if not cleaned_url.startswith(("http://", "https://")):
            raise QuizValidationError("Invalid article URL.")
        article = self._store.get_article_by_url(cleaned_url)
        if article is None:
            article = self._store.add_article(
                Article(id=uuid4(), url=cleaned_url, title=title.strip(), image_url=image_url)
            )
        self._store.attach_article(quiz_id, article.id)
        return article

    def remove_article_from_quiz(self, quiz_id: UUID, article_id: UUID) -> bool:
        self._catalog.get_quiz(quiz_id, include_questions=False)
        return self._store.detach_article(quiz_id, article_id)

    def list_quiz_articles(self, quiz_id: UUID) -> list[Article]:
        self._catalog.get_quiz(quiz_id, include_questions=False)
        return self._store.list_quiz_articles(quiz_id)

    def list_used_articles(self, quiz_id: UUID) -> list[Article]:
        """Articles referenced by the quiz's questions, in question order."""
        quiz = self._catalog.get_quiz(quiz_id)
        seen: set[UUID] = set()
        articles: list[Article] = []
        for question in quiz.questions:
            if question.article_id is None or question.article_id in seen:
                continue
            seen.add(question.article_id)
            article = self._store.get_article(question.article_id)
            if article is not None:
                articles.append(article)
        return articles
