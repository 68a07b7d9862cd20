"""
Core configuration module for the interview session core.
Loads settings from environment variables and config files.
"""
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "AI_Interview_Core"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Session store
    session_store_backend: str = "mongo"  # mongo, memory
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "interview_core"

    # Model Provider Overrides
    provider_llm_provider: Optional[str] = None
    provider_llm_model: Optional[str] = None
    llm_config_path: Optional[str] = None

    # vLLM / OpenAI-compatible
    vllm_api_url: str = "http://localhost:8001/v1"
    vllm_api_key: Optional[str] = None

    # Ollama
    ollama_api_url: str = "http://localhost:11434"

    # Reasoning service timeouts (seconds)
    question_timeout_seconds: float = 45.0
    evaluation_timeout_seconds: float = 30.0
    report_timeout_seconds: float = 90.0

    # Interview rules
    min_seed_text_length: int = 50
    min_answer_length: int = 10
    default_question_count: int = 8

    # Integrity tracking
    security_event_window: int = 100
    tab_event_window: int = 100

    # Read-after-write verification (advisory only)
    verify_writes: bool = True
    verify_write_delay_seconds: float = 0.25

    # Answer submission rate limit
    answer_rate_limit: int = 30
    answer_rate_window_seconds: float = 60.0
    rate_limit_block_after_violations: int = 5
    rate_limit_block_seconds: float = 15 * 60


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_model_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load model configuration from YAML file.
    Environment variables can override config values.
    """
    settings = get_settings()
    config_path = config_path or settings.llm_config_path

    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "models.yaml"
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
    else:
        config = {}

    llm = config.setdefault("providers", {}).setdefault("llm", {})

    # Apply environment variable overrides
    if settings.provider_llm_provider:
        llm["provider"] = settings.provider_llm_provider

    if settings.provider_llm_model:
        llm["model"] = settings.provider_llm_model

    return config


@lru_cache()
def get_llm_config() -> Dict[str, Any]:
    """Get the cached LLM provider section of the model configuration."""
    return load_model_config().get("providers", {}).get("llm", {})
