"""Configuration from .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # AI evaluation is disabled when no key is configured.
    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    EVALUATOR_MODEL: str = "openai/gpt-oss-120b"
    EVALUATOR_TEMPERATURE: float = 0.3
    EVALUATOR_MAX_TOKENS: int = 4096
    ASSESSMENT_TEMPERATURE: float = 0.5
    ASSESSMENT_MAX_TOKENS: int = 2048
    HTTP_TIMEOUT_SECONDS: float = 60.0

    # Worker supervision
    EVALUATION_TIMEOUT_SECONDS: float = 30.0
    MAX_CONSECUTIVE_RESTARTS: int = 3

    DATA_DIR: str = "data"
    FLASHCARDS_DIR: str = "flashcards"

    LOG_LEVEL: str = "INFO"
    # The terminal belongs to the UI, so logs go to a file.
    LOG_FILE: str = "ai_debug.log"

    @property
    def ai_enabled(self) -> bool:
        return bool(self.OPENROUTER_API_KEY)


settings = Settings()
