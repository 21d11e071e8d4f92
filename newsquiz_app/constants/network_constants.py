"""Network and storage configuration for the quiz application.

Values come from the environment. A ``.env`` file in the working directory is
loaded first so local runs need no exported variables.
"""

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_HOST: str = os.getenv("NEWSQUIZ_HOST", "0.0.0.0")
DEFAULT_PORT: int = int(os.getenv("NEWSQUIZ_PORT", "8000"))
DATABASE_URL: str | None = os.getenv("DATABASE_URL") or None

USER_ID_HEADER: str = "X-User-Id"
API_PREFIX: str = "/api/v1"
