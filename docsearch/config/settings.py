"""Application settings loaded from environment variables via pydantic-settings.

Values are read from, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. The ``.env`` file in the working directory

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  An empty
string means "not configured": the providers and services check for it
and fail with a configuration error instead of calling out.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPENAI_API_URL = "https://api.openai.com/v1"
DEFAULT_COMPLETION_MODEL = "gpt-4o-mini"


class Settings(BaseSettings):
    """docsearch application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === AI provider ===
    # Generation is only enabled when AI_DRIVER=openai.
    ai_driver: str = ""
    openai_api_key: str = ""
    openai_api_url: str = DEFAULT_OPENAI_API_URL
    ai_completion_model: str = DEFAULT_COMPLETION_MODEL
    ai_embedding_model: str = ""
    ai_embedding_dimension: int = 0  # 0 = not configured
    provider_timeout_seconds: float = 60.0

    # === Storage ===
    database_path: str = "data/docsearch.db"
    # Create the embedding table at startup.  Disable when the schema is
    # managed by an external migration step.
    auto_migrate: bool = True

    # === Indexing / retrieval ===
    chunk_size: int = 1500
    retrieval_top_k: int = 8
    status_recent_chunks: int = 3
    page_link_prefix: str = "/page/"
    query_cache_ttl: int = 300

    # === Job queue ===
    worker_concurrency: int = 2
    queue_max_attempts: int = 3
    queue_backoff_seconds: float = 2.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def is_generation_enabled(self) -> bool:
        """Return ``True`` when the openai driver is selected."""
        return self.ai_driver.strip().lower() == "openai"

    def is_embedding_configured(self) -> bool:
        """Return ``True`` when both the embedding model and dimension are set."""
        return bool(self.ai_embedding_model) and self.ai_embedding_dimension > 0
