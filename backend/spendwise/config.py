from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": "../.env", "extra": "ignore"}

    # AI Providers
    GEMINI_API_KEY: str = ""
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    DEFAULT_AI_PROVIDER: str = "gemini"

    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_USE_STREAM: bool = False
    OPENAI_MODEL: str = "gpt-4o"
    ANTHROPIC_MODEL: str = "claude-sonnet-4-5-20250929"

    # Generation
    LLM_TEMPERATURE: float = 0.3
    LLM_MAX_OUTPUT_TOKENS: int = 400
    SUMMARY_MAX_OUTPUT_TOKENS: int = 2000
    SUMMARY_TIMEOUT_SECONDS: float = 30.0

    # Transport resilience
    LLM_TIMEOUT_SECONDS: float = 8.0
    LLM_MAX_ATTEMPTS: int = 3
    LLM_BACKOFF_BASE_SECONDS: float = 1.0
    LLM_BACKOFF_MAX_SECONDS: float = 10.0

    # Batch classification
    CLASSIFY_BATCH_CONCURRENCY: int = 3
    CLASSIFY_BATCH_DELAY_SECONDS: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]


settings = Settings()
