"""
Environment settings (OpenRouter gateway, per-operation model lists)
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODELS = [
    "google/gemini-2.0-flash-exp:free",
    "qwen/qwen3-235b-a22b:free",
    "deepseek/deepseek-chat-v3-0324:free",
    "mistralai/mistral-small-3.2-24b-instruct:free",
]


class Settings(BaseSettings):
    # LLM gateway
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    HTTP_REFERER: str = ""
    APP_TITLE: str = "Chinese Practice App"

    # Model candidates, tried in order
    STORY_MODELS: List[str] = [
        "google/gemini-2.5-flash",
        "google/gemini-2.0-flash-exp:free",
        "qwen/qwen3-235b-a22b:free",
    ]
    ANALYSIS_MODELS: List[str] = list(DEFAULT_MODELS)
    QUESTION_MODELS: List[str] = list(DEFAULT_MODELS)

    # Seconds per model call; 0 disables the limit
    REQUEST_TIMEOUT: float = 60.0

    # Minimum merged hanzi length; 0 disables the check
    STORY_MIN_LENGTH: int = 0

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def request_timeout(self) -> Optional[float]:
        return self.REQUEST_TIMEOUT if self.REQUEST_TIMEOUT > 0 else None

    def get_current_provider_info(self) -> dict:
        """Current provider info"""
        if self.OPENROUTER_API_KEY:
            return {
                "provider": "openrouter",
                "base_url": self.OPENROUTER_BASE_URL,
                "status": "configured"
            }
        return {
            "provider": "openrouter",
            "base_url": self.OPENROUTER_BASE_URL,
            "status": "missing_api_key"
        }

    def validate_settings(self) -> list:
        """Validate settings and return warnings"""
        warnings = []

        if not self.OPENROUTER_API_KEY:
            warnings.append("OPENROUTER_API_KEY is not configured")

        for name in ("STORY_MODELS", "ANALYSIS_MODELS", "QUESTION_MODELS"):
            if not getattr(self, name):
                warnings.append(f"{name} is empty; every request will fail")

        if self.REQUEST_TIMEOUT <= 0:
            warnings.append("REQUEST_TIMEOUT disabled; a hung model call blocks the request")

        if self.STORY_MIN_LENGTH < 0:
            warnings.append(f"STORY_MIN_LENGTH is negative: {self.STORY_MIN_LENGTH}")

        return warnings


def get_settings() -> Settings:
    """Settings re-read from the environment for each request."""
    return Settings()
