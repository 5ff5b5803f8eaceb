# app/modules/products/router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import get_current_user, require_roles
from app.core.auth.schemas import ADMIN_ONLY, MANAGEMENT
from app.shared.database.models import User
from .schemas import (
    BulkStockUpdateRequest, CategoryCreate, CategoryUpdate,
    ProductCreate, ProductUpdate, StockUpdateRequest
)
from .service import ProductsService

router = APIRouter(prefix="/products", tags=["Products"])
categories_router = APIRouter(prefix="/categories", tags=["Categories"])
inventory_router = APIRouter(prefix="/inventory", tags=["Inventory"])

# ==================== PRODUCTS ====================

@router.get("")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match on name, SKU, barcode or brand"),
    category_id: Optional[int] = Query(None),
    brand: Optional[str] = Query(None),
    low_stock: bool = Query(False, description="Only products at or below their reorder level"),
    sort_by: str = Query("created_at", pattern="^(created_at|name|price|stock|sku)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.list_products(page, limit, search, category_id, brand, low_stock, sort_by, sort_order)


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.get_product(product_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.create_product(payload, current_user)


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.update_product(product_id, payload)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.delete_product(product_id)


@router.post("/{product_id}/update-stock")
async def update_stock(
    product_id: int,
    payload: StockUpdateRequest,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.update_stock(product_id, payload)

# ==================== INVENTORY ====================

@inventory_router.get("/overview")
async def inventory_overview(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.get_overview()


@inventory_router.get("/alerts")
async def low_stock_alerts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Products at or below their reorder level, and products out of stock"""
    service = ProductsService(db)
    return await service.get_alerts()


@inventory_router.post("/bulk-update")
async def bulk_update_stock(
    payload: BulkStockUpdateRequest,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.bulk_update_stock(payload)


@inventory_router.get("/movement/{product_id}")
async def stock_movement(
    product_id: int,
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.get_movements(product_id, limit)

# ==================== CATEGORIES ====================

@categories_router.get("")
async def list_categories(
    include_inactive: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.list_categories(include_inactive)


@categories_router.get("/{category_id}")
async def get_category(
    category_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.get_category(category_id)


@categories_router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.create_category(payload, current_user)


@categories_router.put("/{category_id}")
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.update_category(category_id, payload)


@categories_router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = ProductsService(db)
    return await service.delete_category(category_id)
