"""
Process settings loaded from environment variables using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings. Every field maps to an upper-case environment variable."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Server
    port: int = 3000
    host: str = "0.0.0.0"
    log_level: str = "INFO"

    # Persistence
    universe_db_path: str = "universes.db"

    # Agent behavior
    model_provider: str = "deepseek"
    agent_temperature: float = 0.8
    agent_max_tokens: int = 2000
    agent_system_prompt: Optional[str] = None
    history_window: int = 20

    # Model Service credentials
    deepseek_api_key: str = ""
    openai_api_key: str = ""
    model_timeout_seconds: Optional[float] = None

    def agent_config(self) -> dict:
        """Partial agent configuration for the Configuration Validator."""
        config = {
            "model_provider": self.model_provider,
            "temperature": self.agent_temperature,
            "max_tokens": self.agent_max_tokens,
        }
        if self.agent_system_prompt:
            config["system_prompt"] = self.agent_system_prompt
        return config


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
