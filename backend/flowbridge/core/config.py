"""
Configuration Management - Pydantic Settings.

Loads converter settings from environment variables and the optional .env file.
"""
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service
    app_name: str = Field(default="FlowBridge Workflow Converter", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:4200"],
        alias="CORS_ORIGINS",
    )
    max_document_size_mb: float = Field(default=10.0, alias="MAX_DOCUMENT_SIZE_MB")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    # Conversion defaults
    default_mapping_accuracy: int = Field(default=0, ge=0, le=100, alias="DEFAULT_MAPPING_ACCURACY")
    default_module_ref: int = Field(default=1, ge=1, alias="DEFAULT_MODULE_REF")
    enabled_plugins: List[str] = Field(
        default=["notion-integration", "google-sheets-integration", "weather-integration"],
        alias="ENABLED_PLUGINS",
    )

    # User-defined mappings (YAML or JSON file)
    user_mappings_path: Optional[str] = Field(default=None, alias="USER_MAPPINGS_PATH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def log_level_name(self) -> str:
        """Normalized logging level name."""
        return self.log_level.upper()


# Global settings instance
settings = Settings()
