from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Sleeved"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/sleeved"

    # Rating window for picking a recorded opponent; outside it the
    # closest snapshot overall is used
    snapshot_match_tolerance: int = 200

    # Attempts for a commit that loses an optimistic-concurrency race
    commit_retry_attempts: int = 3


settings = Settings()
