"""
Configuration module - Central access point for environment variables.

CRITICAL: Access ALL environment variables through this module.
NEVER use os.getenv() directly in application code.
"""

__all__ = [
    "Settings",
    "get_settings",
]

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Project
    PROJECT_NAME: str = Field(
        default="Registro Vehicular",
        description="Project name displayed in logs"
    )
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )
    LOG_LEVEL: str = Field(default="INFO")

    # List store (SharePoint-style REST lists)
    LIST_STORE_SITE_URL: str = Field(
        default="",
        description="Site root URL, e.g. https://tenant.sharepoint.com/sites/Transportes"
    )
    LIST_STORE_ACCESS_TOKEN: str = Field(
        default="",
        description="Bearer token used for every list store request"
    )
    LIST_STORE_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout for list store calls"
    )
    LIST_STORE_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per list store call on transient failures"
    )

    # List titles
    VEHICULOS_LIST_TITLE: str = Field(default="Vehiculos")
    CERTIFICADOS_LIST_TITLE: str = Field(default="Certificados")
    PROVEEDORES_LIST_TITLE: str = Field(default="Proveedores")
    PROVEEDORES_DISPLAY_FIELD: str = Field(default="Title")
    PROVEEDORES_USER_FIELD: str = Field(default="Usuarios")

    # Certificates
    DELETE_BATCH_SIZE: int = Field(
        default=10,
        ge=1,
        description="Deletes issued concurrently per batch when removing a plate's certificates"
    )
    VALIDITY_REFERENCE_TIMEZONE: str = Field(
        default="America/Lima",
        description="Timezone whose local midnight defines 'today' for document checks"
    )
    FIRST_FABRICATION_YEAR: int = Field(
        default=1980,
        description="First year offered for the technical review year field"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
