"""Static metadata describing the news quiz service."""

APP_NAME = "NewsQuiz"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "NewsQuiz serves weekly quizzes about recent news articles. Guests can play the "
    "currently open quiz; signed-in readers keep their progress and can join the leaderboard."
)
