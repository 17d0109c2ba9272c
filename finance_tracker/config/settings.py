"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All deployment configuration is centralized here.
User preferences (currency, theme, month start, API key) are data, not
configuration: they live in the settings document managed by storage.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini receipt analysis configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore",
        protected_namespaces=()
    )

    api_key: str = Field(
        default="",
        description="Fallback Gemini API key when the user settings hold none"
    )
    model_names: str = Field(
        default="gemini-2.0-flash-exp,gemini-1.5-flash",
        description="Comma-separated models to try in order (first success wins)"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )

    @field_validator("model_names")
    @classmethod
    def validate_model_names(cls, v: str) -> str:
        if not [name for name in v.split(",") if name.strip()]:
            raise ValueError("At least one Gemini model name is required")
        return v

    @property
    def model_list(self) -> list[str]:
        """Get the fallback model list in order."""
        return [name.strip() for name in self.model_names.split(",") if name.strip()]


class StorageSettings(BaseSettings):
    """JSON file storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding expenses.json, categories.json and settings.json"
    )
    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Directory for temporary receipt uploads"
    )
    audit_file_name: str = Field(
        default="audit.jsonl",
        description="Append-only audit log inside data_dir"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum receipt upload size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp,heic",
        description="Comma-separated list of supported image formats"
    )

    # Recurrence
    max_recurrences: int = Field(
        default=365,
        ge=1,
        le=5000,
        description="Safety cap on instances generated from one recurring template"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error" entries
    for the sections that failed. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
