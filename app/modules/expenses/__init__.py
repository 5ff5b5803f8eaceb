# app/modules/expenses/__init__.py
from .router import router as expenses_router
from .service import ExpensesService

__all__ = [
    "expenses_router",
    "ExpensesService"
]
