"""Application settings, read from the environment (or a .env file)."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database (in-memory by default, point it to a real database for anything beyond local runs)
    DATABASE_URL: str = "sqlite:///:memory:"
    DATABASE_ECHO: bool = False

    # Matchmaking: a waiting ticket older than this is dropped at the next poll
    MATCHMAKING_WAIT_TIMEOUT_SECONDS: int = 60

    # Finished games stay live this long (late snapshots still see how they ended), then only the record remains
    FINISHED_SESSION_RETENTION_SECONDS: int = 300

    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
