# app/modules/reports/__init__.py
from .router import router as reports_router
from .service import ReportsService

__all__ = [
    "reports_router",
    "ReportsService"
]
