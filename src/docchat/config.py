"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # OpenAI-compatible services
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for a local endpoint)")
    openai_organization: str = Field(default="", description="Optional OpenAI organization id")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible API. Leave empty to use OpenAI cloud. "
            "Applies to both the embedding and the completion client."
        ),
    )

    # Embedding
    embedding_model: str = "text-embedding-ada-002"

    # Completion
    completion_model: str = "gpt-3.5-turbo-instruct"
    completion_max_tokens: int = Field(default=64, gt=0)
    completion_temperature: float = 0.0

    # Retrieval
    top_k: int = Field(default=3, gt=0)
    context_separator: str = ". "

    # Storage
    store_path: str = "embedding/embedding.csv"
    upload_dir: str = "uploads"
    deduplicate: bool = Field(
        default=True,
        description="Skip fragments whose text is already in the store.",
    )
    cors_allow_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the HTTP API from a browser.",
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import `settings` wherever needed.
settings = Settings()
