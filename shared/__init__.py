"""
Registro Vehicular - Shared module.

This module contains shared utilities, configuration, and the list store
client used across the application.
"""

from shared.config import Settings, get_settings
from shared.errors import (
    ErrorCategory,
    ErrorLogger,
    NotFoundError,
    RegistroError,
    RemoteStoreError,
    StoreConfigurationError,
    ValidationError,
    extract_error_message,
    get_error_logger,
)
from shared.filters import And, Eq, Or, escape_odata_string
from shared.list_store import ItemQuery, ListStore, SharePointListClient, open_list_store
from shared.logging_config import configure_logging

__all__ = [
    # Core utilities
    "Settings",
    "get_settings",
    "configure_logging",
    # List store
    "ItemQuery",
    "ListStore",
    "SharePointListClient",
    "open_list_store",
    # Filters
    "And",
    "Eq",
    "Or",
    "escape_odata_string",
    # Error handling
    "ErrorCategory",
    "ErrorLogger",
    "get_error_logger",
    "extract_error_message",
    "RegistroError",
    "ValidationError",
    "NotFoundError",
    "RemoteStoreError",
    "StoreConfigurationError",
]
