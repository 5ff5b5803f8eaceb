# app/modules/products/__init__.py
"""
Catalog module: products, categories and inventory levels
"""

from .router import router as products_router, categories_router, inventory_router
from .service import ProductsService, slugify
from .repository import InsufficientStock, ProductsRepository

__all__ = [
    "products_router",
    "categories_router",
    "inventory_router",
    "ProductsService",
    "ProductsRepository",
    "InsufficientStock",
    "slugify"
]
