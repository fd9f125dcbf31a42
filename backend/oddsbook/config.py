"""
backend/oddsbook/config.py

Purpose:
    Central settings loading for the odds service.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    # Server-side key used by the orchestrator and poller; proxy callers send their own.
    ODDS_API_KEY: str = ""
    ODDS_API_BASE_URL: str = "https://api.the-odds-api.com/v4"
    ODDS_API_TIMEOUT_SECONDS: float = 30.0
    # Transport errors and 502/503/504 only, never 429. A call may take
    # (ODDS_API_MAX_RETRIES + 1) x ODDS_API_TIMEOUT_SECONDS plus back-off.
    ODDS_API_MAX_RETRIES: int = 2
    ODDS_API_RETRY_BASE_DELAY: float = 1.0

    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "oddsbook"
    MONGO_TIMEOUT_MS: int = 5000
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # Fetch orchestration
    ODDS_FETCH_PACING_SECONDS: float = 1.0

    # In-memory caches
    ODDS_CACHE_TTL_SECONDS: int = 300  # 5 minutes
    SCORES_CACHE_TTL_SECONDS: int = 120  # 2 minutes

    # Snapshot retention (append-only collections)
    SNAPSHOT_TTL_DAYS: int = 30

    # Background poller
    ODDS_POLLER_ENABLED: bool = False
    ODDS_POLLER_INTERVAL_MINUTES: int = 30
    ODDS_POLLER_SPORTS: str = ""  # comma list; empty = every active upstream sport
    ODDS_POLLER_SPORT_PACING_SECONDS: float = 2.0

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
