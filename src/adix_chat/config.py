"""Process configuration read from the environment (and `.env`) at startup."""

import json
from typing import Annotated, Any, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from structlog import get_logger

logger = get_logger()


class Settings(BaseSettings):
    github_token: str = ""
    gemini_api_key: str = ""
    mistral_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    cohere_api_key: str = ""
    admin_token: str = ""                # empty disables the admin API
    default_rate_limit: int = 3          # requests per window per client
    rate_window_seconds: float = 60.0
    default_provider: str = "github"
    default_model: str = "gpt-5"
    provider_timeout_seconds: float = 30.0
    gemini_full_history: bool = False
    expose_provider_keys: bool = True
    cors_origins: Annotated[List[str], NoDecode] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        """Accept a JSON list or a comma-separated string."""
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    def api_key_for(self, provider: str) -> str:
        """Configured key for a provider kind, falling back to the GitHub token."""
        key = getattr(self, f"{provider}_api_key", "") or ""
        return key or self.github_token

    def warn_missing(self) -> None:
        """Log missing credentials; none of them are fatal."""
        for name in ("github_token", "gemini_api_key", "mistral_api_key"):
            if not getattr(self, name):
                logger.warning("provider_token_missing", setting=name.upper())
        if not self.admin_token:
            logger.warning("admin_token_missing", detail="admin endpoints will reject every request")
