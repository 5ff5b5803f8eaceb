# app/modules/admin/__init__.py
"""
Admin module: user management (roles, permissions, status) and the activity log
"""

from .router import router as admin_router, activities_router
from .service import AdminService
from .repository import AdminRepository

__all__ = [
    "admin_router",
    "activities_router",
    "AdminService",
    "AdminRepository"
]
