"""
Dalil - Centralized Configuration
==================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.

Retrieval tuning
----------------
``RELEVANCE_THRESHOLD`` and ``SIMILARITY_CACHE_SIZE`` are product knobs,
not invariants.  The threshold is a cosine *distance* (``1 - cosine``):
unscoped vector hits farther than this are treated as noise.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required** — the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini embeddings + chat).  **Required.**
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    LOG_LEVEL : str | None
        Explicit log level; overrides the ``ENV`` default when set.
    EMBEDDING_MODEL : str
        Model identifier passed to ``GoogleGenerativeAIEmbeddings``.
    EMBEDDING_DIM : int
        Width of the catalog's fixed-size vector column.
    LLM_MODEL : str
        Model identifier for the concierge response LLM.
    LANCEDB_TABLE_NAME : str
        Catalog table name inside the LanceDB on-disk database.
    SIMILARITY_CACHE_SIZE : int
        Maximum number of cached retrieval result lists.
    RELEVANCE_THRESHOLD : float
        Maximum cosine distance kept by the unscoped vector fallback.
    MEMORY_TTL_SECONDS : int
        Inactivity window after which a user's conversation context expires.
    MEMORY_MAX_USERS : int
        Number of user contexts tracked before the oldest is evicted.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    LANCEDB_PATH: Path = BASE_DIR / "data" / "lancedb"
    CATALOG_JSON_PATH: Path = BASE_DIR / "data" / "raw" / "nested_data.json"
    TAXONOMY_PATH: Path | None = None

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None

    # ── API Keys (REQUIRED, no default) ────────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "models/text-embedding-004"
    EMBEDDING_DIM: int = 768
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.7

    # ── LanceDB ────────────────────────────────────────────────────────
    LANCEDB_TABLE_NAME: str = "activities"

    # ── Retrieval ──────────────────────────────────────────────────────
    SIMILARITY_CACHE_SIZE: int = 50
    CACHE_KEY_VECTOR_PREFIX: int = 20
    RELEVANCE_THRESHOLD: float = 0.3
    DEFAULT_RESULTS_LIMIT: int = 10
    CATEGORY_RESULTS_LIMIT: int = 25
    FUZZY_RESULTS_LIMIT: int = 50
    CONTEXT_RESULTS_LIMIT: int = 10

    # ── Conversation Memory ────────────────────────────────────────────
    MEMORY_TTL_SECONDS: int = 30 * 60
    MEMORY_MAX_USERS: int = 50
    MEMORY_MAX_ITEMS: int = 5
    HISTORY_LIMIT: int = 10

    # ── Embedding Cache ────────────────────────────────────────────────
    EMBEDDING_CACHE_SIZE: int = 500
    EMBEDDING_CACHE_TTL_SECONDS: int = 24 * 60 * 60

    # ── Ingestion ──────────────────────────────────────────────────────
    EMBED_BATCH_SIZE: int = 16
    MAX_WORKERS: int = 4

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("RELEVANCE_THRESHOLD")
    @classmethod
    def _threshold_range(cls, v: float) -> float:
        if not 0.0 < v <= 2.0:
            raise ValueError(f"RELEVANCE_THRESHOLD must be in (0, 2], got {v}")
        return v


    @field_validator("SIMILARITY_CACHE_SIZE", "MEMORY_MAX_USERS", "MEMORY_MAX_ITEMS", "EMBEDDING_CACHE_SIZE", "DEFAULT_RESULTS_LIMIT", "CATEGORY_RESULTS_LIMIT", "FUZZY_RESULTS_LIMIT", "CONTEXT_RESULTS_LIMIT", "EMBEDDING_DIM", "CACHE_KEY_VECTOR_PREFIX", "EMBED_BATCH_SIZE")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"value must be ≥ 1, got {v}")
        return v


    @field_validator("MAX_WORKERS")
    @classmethod
    def _workers_range(cls, v: int) -> int:
        if not 1 <= v <= 16:
            raise ValueError(f"MAX_WORKERS must be 1–16, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from dalil.config.settings import settings
settings = Settings()
