"""Quiz-related constants shared across the core and the API."""

from datetime import timedelta

DEFAULT_QUIZ_TITLE_TEMPLATE: str = "Quiz: Week {week}"
DEFAULT_QUIZ_IMAGE_URL: str = "https://unsplash.it/200/200"
DEFAULT_QUIZ_DURATION: timedelta = timedelta(days=7)

DEFAULT_QUESTION_POINTS: int = 10
MIN_ALTERNATIVES_PER_QUESTION: int = 2

DEFAULT_LEADERBOARD_LIMIT: int = 10
ANONYMOUS_DISPLAY_NAME: str = "Anonymous"
