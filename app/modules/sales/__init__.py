# app/modules/sales/__init__.py
"""
Sales module

- calculations.py: line totals, header adjustments, change, POS cart with returns
- router.py: FastAPI endpoints
- service.py: sale lifecycle (checkout, refund, payment, quote)
- repository.py: data access
- schemas.py: pydantic request/response models
"""

from .router import router as sales_router
from .service import SalesService, serialize_sale
from .repository import SalesRepository

__all__ = [
    "sales_router",
    "SalesService",
    "SalesRepository",
    "serialize_sale"
]
