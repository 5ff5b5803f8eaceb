# app/modules/products/service.py
import logging
import re
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.shared.database.models import Category, Product, Supplier, User
from app.shared.pagination import paginate
from .repository import InsufficientStock, ProductsRepository
from .schemas import (
    BulkStockUpdateRequest, CategoryCreate, CategoryResponse, CategoryUpdate,
    ProductCreate, ProductResponse, ProductUpdate, StockOperation, StockUpdateRequest
)

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    """'Home & Garden' -> 'home-garden'"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class ProductsService:
    """
    Catalog management: products, categories and inventory levels
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = ProductsRepository(db)

    def _get_or_404(self, product_id: int) -> Product:
        product = self.repository.get_by_id(product_id)
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        return product

    def _check_references(self, category_id: Optional[int], supplier_id: Optional[int]):
        if category_id and not self.repository.get_category(category_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category not found")
        if supplier_id and not self.db.query(Supplier).filter(Supplier.id == supplier_id).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Supplier not found")

    # ==================== PRODUCTS ====================

    async def list_products(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        brand: Optional[str] = None,
        low_stock: bool = False,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ) -> dict:
        query = self.repository.search_query(search, category_id, brand, low_stock, sort_by, sort_order)
        products, pagination = paginate(query, page, limit)
        return {
            "success": True,
            "count": len(products),
            "pagination": pagination,
            "data": [ProductResponse.from_product(p) for p in products]
        }

    async def get_product(self, product_id: int) -> dict:
        product = self._get_or_404(product_id)
        return {"success": True, "data": ProductResponse.from_product(product)}

    async def create_product(self, payload: ProductCreate, current_user: User) -> dict:
        if self.repository.find_conflict(payload.sku, payload.barcode):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU or barcode already exists")
        self._check_references(payload.category_id, payload.supplier_id)

        data = payload.model_dump()
        data["unit"] = payload.unit.value
        product = Product(**data, created_by_id=current_user.id)
        self.db.add(product)
        self.db.commit()

        product = self.repository.get_by_id(product.id)
        logger.info(f"Product {product.sku} created by user {current_user.id}")
        return {
            "success": True,
            "message": "Product created successfully",
            "data": ProductResponse.from_product(product)
        }

    async def update_product(self, product_id: int, payload: ProductUpdate) -> dict:
        product = self._get_or_404(product_id)
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("sku") or changes.get("barcode"):
            if self.repository.find_conflict(changes.get("sku"), changes.get("barcode"), exclude_id=product.id):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU or barcode already exists")
        self._check_references(changes.get("category_id"), changes.get("supplier_id"))

        for key, value in changes.items():
            if hasattr(value, "value"):
                value = value.value
            setattr(product, key, value)

        self.db.commit()
        self.db.refresh(product)
        return {
            "success": True,
            "message": "Product updated successfully",
            "data": ProductResponse.from_product(product)
        }

    async def delete_product(self, product_id: int) -> dict:
        """Products referenced by past sales are deactivated, not removed"""
        product = self._get_or_404(product_id)
        product.is_active = False
        self.db.commit()
        return {"success": True, "message": "Product deleted successfully"}

    # ==================== INVENTORY ====================

    async def update_stock(self, product_id: int, payload: StockUpdateRequest) -> dict:
        product = self._get_or_404(product_id)

        if payload.operation == StockOperation.ADD:
            self.repository.increment_stock(product.id, payload.quantity)
        else:
            try:
                self.repository.take_stock(product.id, payload.quantity)
            except InsufficientStock:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Insufficient stock for {product.name}"
                )

        self.db.commit()
        self.db.refresh(product)
        return {
            "success": True,
            "message": "Stock updated successfully",
            "data": {
                "id": product.id,
                "name": product.name,
                "stock": product.stock,
                "stock_status": product.stock_status
            }
        }

    async def bulk_update_stock(self, payload: BulkStockUpdateRequest) -> dict:
        """
        Apply each adjustment independently; a failed line is reported in the
        results and does not undo the others.
        """
        results = []
        for item in payload.updates:
            product = self.repository.get_by_id(item.product_id)
            if not product:
                results.append({"product_id": item.product_id, "success": False, "error": "Product not found"})
                continue

            if item.type == StockOperation.ADD:
                self.repository.increment_stock(product.id, item.quantity)
            elif item.type == StockOperation.SUBTRACT:
                if not self.repository.decrement_stock(product.id, item.quantity):
                    results.append({"product_id": item.product_id, "success": False, "error": "Insufficient stock"})
                    continue
            else:
                product.stock = item.quantity

            self.db.commit()
            results.append({
                "product_id": item.product_id,
                "success": True,
                "new_stock": self.repository.current_stock(product.id)
            })

        return {"success": True, "data": results}

    async def get_alerts(self) -> dict:
        return {
            "success": True,
            "data": {
                "low_stock": [ProductResponse.from_product(p) for p in self.repository.low_stock()],
                "out_of_stock": [ProductResponse.from_product(p) for p in self.repository.out_of_stock()]
            }
        }

    async def get_overview(self) -> dict:
        return {"success": True, "data": self.repository.inventory_totals()}

    async def get_movements(self, product_id: int, limit: int = 50) -> dict:
        """Stock leaving through sales, newest first"""
        product = self._get_or_404(product_id)
        movements = [
            {
                "sale_id": item.sale_id,
                "invoice_number": item.sale.invoice_number,
                "date": item.sale.created_at,
                "quantity": -item.quantity,
                "sale_status": item.sale.status
            }
            for item in self.repository.sale_movements(product.id, limit)
        ]
        return {
            "success": True,
            "data": {
                "product": {
                    "id": product.id,
                    "name": product.name,
                    "sku": product.sku,
                    "current_stock": product.stock,
                    "reorder_level": product.reorder_level
                },
                "movements": movements
            }
        }

    # ==================== CATEGORIES ====================

    def _category_response(self, category: Category, counts: Optional[dict] = None) -> CategoryResponse:
        response = CategoryResponse.model_validate(category)
        if counts is None:
            counts = self.repository.product_counts_by_category()
        response.product_count = counts.get(category.id, 0)
        return response

    def _get_category_or_404(self, category_id: int) -> Category:
        category = self.repository.get_category(category_id)
        if not category:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
        return category

    async def list_categories(self, include_inactive: bool = False) -> dict:
        categories = self.repository.list_categories(include_inactive)
        counts = self.repository.product_counts_by_category()
        return {
            "success": True,
            "count": len(categories),
            "data": [self._category_response(c, counts) for c in categories]
        }

    async def get_category(self, category_id: int) -> dict:
        category = self._get_category_or_404(category_id)
        return {"success": True, "data": self._category_response(category)}

    async def create_category(self, payload: CategoryCreate, current_user: User) -> dict:
        slug = slugify(payload.name)
        if not slug:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category name must contain letters or digits")
        if self.repository.find_category_conflict(payload.name, slug):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category with this name already exists")
        if payload.parent_id:
            self._get_category_or_404(payload.parent_id)

        category = Category(**payload.model_dump(), slug=slug, created_by_id=current_user.id)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return {"success": True, "data": self._category_response(category)}

    async def update_category(self, category_id: int, payload: CategoryUpdate) -> dict:
        category = self._get_category_or_404(category_id)
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("name"):
            name = changes["name"].strip()
            slug = slugify(name)
            if self.repository.find_category_conflict(name, slug, exclude_id=category.id):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category with this name already exists")
            changes["name"] = name
            changes["slug"] = slug
        if changes.get("parent_id") == category.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A category cannot be its own parent")

        for key, value in changes.items():
            setattr(category, key, value)

        self.db.commit()
        self.db.refresh(category)
        return {"success": True, "data": self._category_response(category)}

    async def delete_category(self, category_id: int) -> dict:
        category = self._get_category_or_404(category_id)
        category.is_active = False
        self.db.commit()
        return {"success": True, "message": "Category deleted successfully"}
