# app/modules/products/repository.py
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Query, Session, joinedload

from app.shared.database.models import Category, Product, Sale, SaleItem

SORTABLE_FIELDS = {
    "created_at": Product.created_at,
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
    "sku": Product.sku,
}


class InsufficientStock(Exception):
    def __init__(self, product_id: int, requested: int):
        self.product_id = product_id
        self.requested = requested
        super().__init__(f"Product {product_id} has fewer than {requested} units in stock")


class ProductsRepository:
    """
    Data access for products, categories and stock levels
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== PRODUCTS ====================

    def get_by_id(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product)\
            .options(joinedload(Product.category), joinedload(Product.supplier))\
            .filter(Product.id == product_id).first()

    def get_many(self, product_ids: List[int]) -> List[Product]:
        if not product_ids:
            return []
        return self.db.query(Product).filter(Product.id.in_(product_ids)).all()

    def find_conflict(self, sku: Optional[str], barcode: Optional[str], exclude_id: Optional[int] = None) -> Optional[Product]:
        conditions = []
        if sku:
            conditions.append(Product.sku == sku)
        if barcode:
            conditions.append(Product.barcode == barcode)
        if not conditions:
            return None
        query = self.db.query(Product).filter(or_(*conditions))
        if exclude_id:
            query = query.filter(Product.id != exclude_id)
        return query.first()

    def search_query(
        self,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        brand: Optional[str] = None,
        low_stock: bool = False,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ) -> Query:
        query = self.db.query(Product)\
            .options(joinedload(Product.category), joinedload(Product.supplier))\
            .filter(Product.is_active.is_(True))

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
                Product.barcode.ilike(pattern),
                Product.brand.ilike(pattern)
            ))
        if category_id:
            query = query.filter(Product.category_id == category_id)
        if brand:
            query = query.filter(Product.brand.ilike(f"%{brand}%"))
        if low_stock:
            query = query.filter(Product.stock <= Product.reorder_level)

        column = SORTABLE_FIELDS.get(sort_by, Product.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        return query.order_by(ordering, Product.id.desc())

    def low_stock(self) -> List[Product]:
        return self.db.query(Product)\
            .options(joinedload(Product.category), joinedload(Product.supplier))\
            .filter(
                Product.is_active.is_(True),
                Product.stock > 0,
                Product.stock <= Product.reorder_level
            ).order_by(Product.stock.asc()).all()

    def out_of_stock(self) -> List[Product]:
        return self.db.query(Product)\
            .options(joinedload(Product.category), joinedload(Product.supplier))\
            .filter(Product.is_active.is_(True), Product.stock == 0)\
            .order_by(Product.name.asc()).all()

    def inventory_totals(self) -> dict:
        active = Product.is_active.is_(True)
        total_products = self.db.query(func.count(Product.id)).filter(active).scalar() or 0
        low_stock = self.db.query(func.count(Product.id))\
            .filter(active, Product.stock <= Product.reorder_level).scalar() or 0
        out_of_stock = self.db.query(func.count(Product.id))\
            .filter(active, Product.stock == 0).scalar() or 0
        stock_value = self.db.query(func.sum(Product.stock * Product.cost_price))\
            .filter(active).scalar() or 0
        retail_value = self.db.query(func.sum(Product.stock * Product.selling_price))\
            .filter(active).scalar() or 0
        return {
            "total_products": total_products,
            "low_stock_products": low_stock,
            "out_of_stock_products": out_of_stock,
            "total_stock_value": stock_value,
            "total_retail_value": retail_value,
        }

    def sale_movements(self, product_id: int, limit: int = 50) -> List[SaleItem]:
        return self.db.query(SaleItem)\
            .join(Sale, Sale.id == SaleItem.sale_id)\
            .options(joinedload(SaleItem.sale))\
            .filter(SaleItem.product_id == product_id)\
            .order_by(Sale.created_at.desc(), SaleItem.id.desc())\
            .limit(limit).all()

    # ==================== STOCK ====================

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        """
        Conditional atomic decrement. False when the row does not have
        `quantity` units left, in which case nothing changed.
        """
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def take_stock(self, product_id: int, quantity: int) -> None:
        if not self.decrement_stock(product_id, quantity):
            raise InsufficientStock(product_id, quantity)

    def increment_stock(self, product_id: int, quantity: int) -> bool:
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def current_stock(self, product_id: int) -> Optional[int]:
        return self.db.query(Product.stock).filter(Product.id == product_id).scalar()

    # ==================== CATEGORIES ====================

    def get_category(self, category_id: int) -> Optional[Category]:
        return self.db.query(Category).filter(Category.id == category_id).first()

    def find_category_conflict(self, name: str, slug: str, exclude_id: Optional[int] = None) -> Optional[Category]:
        query = self.db.query(Category).filter(or_(
            func.lower(Category.name) == name.lower(),
            Category.slug == slug
        ))
        if exclude_id:
            query = query.filter(Category.id != exclude_id)
        return query.first()

    def list_categories(self, include_inactive: bool = False) -> List[Category]:
        query = self.db.query(Category)
        if not include_inactive:
            query = query.filter(Category.is_active.is_(True))
        return query.order_by(Category.sort_order.asc(), Category.name.asc()).all()

    def product_counts_by_category(self) -> dict:
        rows = self.db.query(Product.category_id, func.count(Product.id))\
            .filter(Product.is_active.is_(True), Product.category_id.isnot(None))\
            .group_by(Product.category_id).all()
        return {category_id: count for category_id, count in rows}
