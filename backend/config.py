from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Hanzi SRS"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'hanzi_srs.db'}"
    max_reviews_per_session: int = 20
    max_new_cards_per_session: int = 10
    mastery_target: int = 3
    sync_practice_reviews: bool = False  # route quick/mastery answers into SM-2 state
    heatmap_days: int = 90
    session_ttl_seconds: int = 7200  # 2 hours
    debug: bool = False

    model_config = {"env_prefix": "HANZI_SRS_", "env_file": ".env"}


settings = Settings()
