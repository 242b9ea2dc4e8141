"""
Configuration management for the math tutor service.

Uses Pydantic Settings for environment variable management and validation.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""

    # Application
    environment: Literal["development", "staging", "production"] = "development"
    port: int = 3000

    # CORS
    cors_origins: list[str] = ["*"]

    # Files
    static_dir: Path = PROJECT_ROOT / "public"
    upload_dir: Path = PROJECT_ROOT / "uploads"

    # LLM (Default: OpenAI, Google Gemini also supported)
    llm_provider: Literal["openai", "google"] = "openai"
    solve_model: str = "gpt-4o-mini"  # Google: "gemini-2.0-flash"
    temperature: float = 0.2
    solve_timeout_seconds: float = 45.0

    # Solution contract
    min_steps: int = 2
    max_steps: int = 5
    max_examples: int = 1

    # Graphing
    graph_samples: int = 300
    graph_x_min: float = -10.0
    graph_x_max: float = 10.0
    graph_max_expression_length: int = 200

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
