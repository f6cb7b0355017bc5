"""
Database connection management.

The Supabase client is created explicitly by the entry point (FastAPI
lifespan or a script) and passed to every service that needs it.
Nothing here opens a connection at import time.
"""

from typing import Optional
import structlog

from supabase import create_client, Client

from config.settings import Settings

logger = structlog.get_logger(__name__)

CATALOG_TABLES = (
    "products",
    "product_variants",
    "inventory",
    "warranties",
    "unit_conversions",
)


class DatabaseConnectionError(Exception):
    """Failed to connect to database."""
    pass


def create_supabase_client(settings: Settings, admin: bool = False) -> Client:
    """
    Create a Supabase client.

    Args:
        settings: Application settings
        admin: Use the service role key instead of the anon key

    Returns:
        Client: Supabase client

    Raises:
        DatabaseConnectionError: If the client cannot be created
    """
    key: Optional[str] = settings.supabase_service_key if admin else settings.supabase_key
    if not key:
        raise DatabaseConnectionError(
            "Supabase service key is not configured" if admin
            else "Supabase key is not configured"
        )

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "...",  # Log partial URL only
            admin=admin
        )
        client = create_client(settings.supabase_url, key)
        logger.info("supabase_client_created")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseConnectionError(f"Failed to connect to Supabase: {e}") from e


def check_connection(client: Client) -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with row counts per catalog table
    """
    try:
        counts = {}
        for table in CATALOG_TABLES:
            result = client.table(table).select("id", count="exact").limit(1).execute()
            counts[table] = result.count or 0

        return {
            "status": "healthy",
            "counts": counts
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
