"""
API route modules.

Each module defines routes for one area: report uploads and expense factors.
"""

from routes.uploads import router as uploads_router
from routes.factors import router as factors_router

__all__ = [
    "uploads_router",
    "factors_router",
]
