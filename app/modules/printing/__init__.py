# app/modules/printing/__init__.py
from .router import router as printing_router
from .service import PrintService
from .strategies import PrintError, PrintResult, PrintStrategy

__all__ = [
    "printing_router",
    "PrintService",
    "PrintError",
    "PrintResult",
    "PrintStrategy"
]
