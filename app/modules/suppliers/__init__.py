# app/modules/suppliers/__init__.py
from .router import router as suppliers_router
from .service import SuppliersService, record_supplier_purchase

__all__ = [
    "suppliers_router",
    "SuppliersService",
    "record_supplier_purchase"
]
