"""
Database connection management.

Provides the Supabase client singleton. The store holds the project and
employee catalogs, the transaction tables and the factor history.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings
from exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Call get_supabase_client.cache_clear() to reconnect.

    Raises:
        ExternalServiceError: If the client cannot be created
    """
    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )
        client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("supabase_connected")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ExternalServiceError(
            service="supabase",
            message=f"Failed to connect to Supabase: {e}"
        ) from e


def check_connection() -> dict:
    """
    Check store connectivity.

    Returns:
        dict: Connection status with catalog sizes
    """
    try:
        client = get_supabase_client()

        projects = client.table("projects").select("proyecto_id", count="exact").execute()
        employees = client.table("employees").select("empleado_id", count="exact").execute()

        return {
            "status": "healthy",
            "projects_count": projects.count,
            "employees_count": employees.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
