"""Application configuration using pydantic-settings."""

from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Workbench settings loaded from environment variables.

    All settings can be configured via:
    1. Environment variables (e.g., DATA_DIR=/my/path)
    2. .env file in the working directory

    Scratch and preference paths are derived from DATA_DIR by default but can be overridden.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API settings
    api_title: str = "Pith Workbench API"
    api_version: str = "0.1.0"
    debug: bool = True  # Default to True for development

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8000

    data_dir: Path = Path.home() / ".pith"

    # None keeps the database in memory for the lifetime of the process
    database_path: Path | None = None
    scratch_dir: Path | None = None
    preferences_path: Path | None = None

    # DuckDB settings
    duckdb_threads: int = 4
    duckdb_memory_limit: str = "4GB"

    # Query settings
    query_timeout_seconds: float | None = None
    default_query_limit: int = 1000

    # Upload limits
    max_upload_size_mb: int = 500

    # Local inference runtime (Ollama)
    ollama_url: str = "http://localhost:11434"
    ai_temperature: float = 0.7
    ai_max_tokens: int = 2048
    ai_request_timeout: float = 600.0

    @model_validator(mode="after")
    def set_default_paths(self) -> "Settings":
        """Set default paths based on data_dir if not explicitly provided."""
        if self.scratch_dir is None:
            self.scratch_dir = self.data_dir / "scratch"
        if self.preferences_path is None:
            self.preferences_path = self.data_dir / "preferences.yaml"
        return self

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
