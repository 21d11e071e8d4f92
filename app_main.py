"""Application entry point for the news quiz service."""

from __future__ import annotations

from newsquiz_app.constants.about import APP_NAME, APP_VERSION
from newsquiz_app.constants.network_constants import DATABASE_URL, DEFAULT_HOST, DEFAULT_PORT
from newsquiz_app.core.memory_store import MemoryStore
from newsquiz_app.core.quiz_manager import QuizManager
from newsquiz_app.core.sql_store import create_sql_store
from newsquiz_app.core.store import QuizStore
from newsquiz_app.server.api_server import run_api_server
from newsquiz_app.utils.logging_config import configure_logging


def build_store(database_url: str | None = DATABASE_URL) -> QuizStore:
    """Use the SQL store when a database URL is configured, otherwise keep everything in memory."""
    if database_url:
        return create_sql_store(database_url)
    return MemoryStore()


def main() -> None:
    """Initialize logging, open the store, and serve the API."""
    logger = configure_logging()
    logger.info("Starting %s %s", APP_NAME, APP_VERSION)

    store = build_store()
    if isinstance(store, MemoryStore):
        logger.warning("DATABASE_URL is not set; answers are kept in memory only.")

    quiz_manager = QuizManager(store)
    logger.info("API listening on http://%s:%s/", DEFAULT_HOST, DEFAULT_PORT)
    run_api_server(quiz_manager=quiz_manager, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
