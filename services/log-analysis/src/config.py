"""
BugSage - Log Analysis Service Configuration
============================================

Centralized configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache
from typing import Optional
from enum import Enum


class LLMProvider(str, Enum):
    """Available text-generation providers."""
    MOCK = "mock"       # Deterministic offline responses for development/testing
    OLLAMA = "ollama"   # Ollama local inference
    OPENAI = "openai"   # OpenAI chat completions


class HistoryBackend(str, Enum):
    """Available analysis history backends."""
    MEMORY = "memory"       # Process-local store for development/testing
    SUPABASE = "supabase"   # Supabase PostgREST table


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # Service identification
    service_name: str = Field(
        default="log-analysis",
        description="Name of this service"
    )
    service_version: str = Field(
        default="0.1.0",
        description="Semantic version"
    )

    # Server configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed to call the API from a browser"
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    # Text generation
    llm_provider: LLMProvider = Field(
        default=LLMProvider.MOCK,
        description="Text-generation provider (mock, ollama, openai)"
    )
    llm_model: str = Field(
        default="gpt-4-turbo-preview",
        description="Model name passed to the provider"
    )
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=2000, ge=1)
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    llm_max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts per completion on transient transport errors"
    )
    openai_api_key: Optional[str] = Field(default=None)
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints"
    )
    ollama_url: str = Field(
        default="http://localhost:11434",
        description="Ollama API URL"
    )

    # Analysis history
    history_backend: HistoryBackend = Field(
        default=HistoryBackend.MEMORY,
        description="Where saved analyses are kept (memory, supabase)"
    )
    supabase_url: str = Field(default="")
    supabase_anon_key: str = Field(default="")
    supabase_table: str = Field(default="analysis_history")
    supabase_timeout_seconds: float = Field(default=15.0, gt=0)

    # Authentication
    auth_jwt_secret: Optional[str] = Field(
        default=None,
        description="HS256 secret; when unset, token signatures are not checked here"
    )
    auth_jwt_audience: Optional[str] = Field(default=None)

    # Input limits
    max_log_chars: int = Field(
        default=100_000,
        ge=1,
        description="Largest log accepted for analysis, in characters"
    )

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
