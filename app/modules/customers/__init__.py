# app/modules/customers/__init__.py
"""
Customers module

- router.py: CRUD and loyalty endpoints
- service.py: business rules
- repository.py: data access
- ledger.py: purchase stats, tier promotion and loyalty balance
"""

from .router import router as customers_router
from .service import CustomersService
from .repository import CustomersRepository

__all__ = [
    "customers_router",
    "CustomersService",
    "CustomersRepository"
]
