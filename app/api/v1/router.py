# app/api/v1/router.py
from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.config.settings import settings
from app.modules.admin import activities_router, admin_router
from app.modules.customers import customers_router
from app.modules.expenses import expenses_router
from app.modules.printing import printing_router
from app.modules.products import categories_router, inventory_router, products_router
from app.modules.reports import reports_router
from app.modules.sales import sales_router
from app.modules.suppliers import suppliers_router

# Main router for API v1
api_router = APIRouter(prefix="/api/v1")

# ==================== ROUTES ====================

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(sales_router)
api_router.include_router(customers_router)
api_router.include_router(products_router)
api_router.include_router(categories_router)
api_router.include_router(inventory_router)
api_router.include_router(suppliers_router)
api_router.include_router(expenses_router)
api_router.include_router(reports_router)
api_router.include_router(printing_router)

api_router.include_router(admin_router)
api_router.include_router(activities_router)

# ==================== ROOT ENDPOINTS ====================

@api_router.get("/")
async def api_root():
    """Root endpoint of the API"""
    return {
        "message": f"{settings.app_name} v1",
        "version": settings.version,
        "status": "active",
        "docs": "/docs",
        "available_endpoints": {
            "authentication": "/api/v1/auth",
            "sales": "/api/v1/sales",
            "customers": "/api/v1/customers",
            "products": "/api/v1/products",
            "categories": "/api/v1/categories",
            "inventory": "/api/v1/inventory",
            "suppliers": "/api/v1/suppliers",
            "expenses": "/api/v1/expenses",
            "reports": "/api/v1/reports",
            "printing": "/api/v1/printing",
            "users": "/api/v1/users",
            "activities": "/api/v1/activities"
        }
    }

@api_router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.version
    }
