"""
FastAPI dependencies.

Shared clients live on app.state; they are created by the application
lifespan and handed to routes through these functions.
"""

from fastapi import Request
from supabase import Client

from config import Settings, get_settings
from services.preview_cache_service import PreviewCache


def get_db(request: Request) -> Client:
    """Supabase client created at startup."""
    return request.app.state.db


def get_preview_cache(request: Request) -> PreviewCache:
    """Upload preview cache created at startup."""
    return request.app.state.preview_cache


def get_app_settings() -> Settings:
    return get_settings()
