"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    create_supabase_client: Build a Supabase client from settings
    check_connection: Health check function
    configure_logging: structlog setup
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    CATALOG_TABLES,
    create_supabase_client,
    check_connection,
    DatabaseConnectionError,
)
from config.logging import configure_logging

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Database
    "CATALOG_TABLES",
    "create_supabase_client",
    "check_connection",
    "DatabaseConnectionError",

    # Logging
    "configure_logging",
]
