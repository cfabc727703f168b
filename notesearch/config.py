from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from notesearch.constants import (
    BASE_DELAY_MS,
    DEFAULT_CONCURRENCY,
    DEFAULT_EMBEDDING_MODEL,
    EMBEDDING_MAX_LENGTH,
    EMBEDDING_MODELS,
    MAX_RETRIES,
    MAX_SEARCH_RESULTS,
    MAX_SEARCH_RESULTS_LIMIT,
    REQUEST_TIMEOUT,
    SIMILARITY_THRESHOLD,
)

NOTESEARCH_DIR = Path.home() / ".notesearch"


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NOTESEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        populate_by_name=True,
    )

    # API keys, read from standard env vars via aliases
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str | None = None

    embedding_model: str = DEFAULT_EMBEDDING_MODEL

    # Embedding API behaviour
    request_timeout: float = REQUEST_TIMEOUT
    max_retries: int = MAX_RETRIES
    retry_base_delay: float = BASE_DELAY_MS / 1000
    batch_concurrency: int = DEFAULT_CONCURRENCY
    embedding_max_length: int = EMBEDDING_MAX_LENGTH

    # Search tuning, defaults for SearchOptions
    min_similarity: float = SIMILARITY_THRESHOLD
    max_results: int = MAX_SEARCH_RESULTS

    db_path: Path = NOTESEARCH_DIR / "notes.db"
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("embedding_model")
    @classmethod
    def _validate_embedding_model(cls, v: str) -> str:
        if v not in EMBEDDING_MODELS:
            raise ValueError(f"Unsupported embedding model: {v}. Must be one of: {', '.join(EMBEDDING_MODELS)}")
        return v

    @field_validator("min_similarity")
    @classmethod
    def _validate_min_similarity(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"min_similarity must be 0-1, got {v}")
        return v

    @field_validator("max_results")
    @classmethod
    def _validate_max_results(cls, v: int) -> int:
        if not 1 <= v <= MAX_SEARCH_RESULTS_LIMIT:
            raise ValueError(f"max_results must be 1-{MAX_SEARCH_RESULTS_LIMIT}, got {v}")
        return v

    @field_validator("max_retries", "batch_concurrency", "embedding_max_length")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be at least 1, got {v}")
        return v

    @property
    def embedding_dimensions(self) -> int:
        return EMBEDDING_MODELS[self.embedding_model]
