"""
Catalog service: read-only access to projects and employees.

The catalog is fetched once per upload and frozen into a CatalogSnapshot;
parsers never query the store themselves.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError
from models.catalog import CatalogSnapshot, Employee, Project

logger = structlog.get_logger(__name__)


class CatalogService:
    """Project/employee catalog reads."""

    def __init__(self):
        self.db = get_supabase_client()
        self.projects_table = "projects"
        self.employees_table = "employees"

    def list_active_projects(self) -> list[Project]:
        """
        Non-deleted projects, any status.

        Finished projects are included: parsers need them to report
        ProjectFinished instead of an unresolved code.
        """
        logger.info("listing_active_projects")

        try:
            response = (
                self.db.table(self.projects_table)
                .select("*")
                .eq("is_deleted", False)
                .execute()
            )
        except Exception as e:
            logger.error("list_projects_failed", error=str(e))
            raise DatabaseError("select", str(e))

        projects = [Project(**row) for row in response.data]
        logger.info("active_projects_listed", count=len(projects))
        return projects

    def list_active_employees(self) -> list[Employee]:
        """Active, non-deleted employees."""
        logger.info("listing_active_employees")

        try:
            response = (
                self.db.table(self.employees_table)
                .select("*")
                .eq("is_deleted", False)
                .eq("activo", True)
                .execute()
            )
        except Exception as e:
            logger.error("list_employees_failed", error=str(e))
            raise DatabaseError("select", str(e))

        employees = [Employee(**row) for row in response.data]
        logger.info("active_employees_listed", count=len(employees))
        return employees

    def get_snapshot(self) -> CatalogSnapshot:
        """Read both catalogs once and index them."""
        snapshot = CatalogSnapshot.build(
            self.list_active_projects(),
            self.list_active_employees(),
        )
        logger.debug(
            "catalog_snapshot_built",
            projects=len(snapshot.projects),
            employees=len(snapshot.employees),
            sae_codes=len(snapshot.projects_by_sae_code),
            internal_codes=len(snapshot.projects_by_internal_code),
        )
        return snapshot


# Singleton instance
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
