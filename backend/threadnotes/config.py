from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]

    cors_origin_regex: str | None = None
    trusted_hosts: list[str] = ["*"]
    root_path: str = ""

    # Store
    store_backend: Literal["supabase", "memory"] = "supabase"
    threads_table: str = "threads"
    notes_table: str = "notes"

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""

    # OpenAI
    openai_api_key: str = ""

    enrichment_model: str = "gpt-5-nano"
    enrichment_model_reasoning: str = "low"

    transcription_model: str = "gpt-4o-mini-transcribe"
    transcription_language: str | None = None
    max_audio_bytes: int = 25 * 1024 * 1024  # OpenAI upload limit
    transcription_interim_chunks: int = 3  # 0 disables interim transcripts


settings = Settings()
