# app/modules/reports/repository.py
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.shared.database.models import Customer, Expense, Product, Sale


def day_bounds(start_date: Optional[date], end_date: Optional[date]):
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date, time.max) if end_date else None
    return start, end


class ReportsRepository:

    def __init__(self, db: Session):
        self.db = db

    def sales(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = "completed",
        payment_method: Optional[str] = None,
        customer_id: Optional[int] = None,
        with_items: bool = False
    ) -> List[Sale]:
        query = self.db.query(Sale).options(joinedload(Sale.customer))
        if with_items:
            query = query.options(joinedload(Sale.items))
        start, end = day_bounds(start_date, end_date)
        if start:
            query = query.filter(Sale.created_at >= start)
        if end:
            query = query.filter(Sale.created_at <= end)
        if status:
            query = query.filter(Sale.status == status)
        if payment_method:
            query = query.filter(Sale.payment_method == payment_method)
        if customer_id:
            query = query.filter(Sale.customer_id == customer_id)
        return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    def sales_totals_since(self, start: datetime, end: Optional[datetime] = None) -> dict:
        query = self.db.query(func.sum(Sale.total), func.count(Sale.id))\
            .filter(Sale.created_at >= start, Sale.status == "completed")
        if end:
            query = query.filter(Sale.created_at <= end)
        total, count = query.one()
        return {"total_sales": total or 0, "total_orders": count or 0}

    def recent_sales(self, limit: int = 5) -> List[Sale]:
        return self.db.query(Sale).options(joinedload(Sale.customer))\
            .filter(Sale.status == "completed")\
            .order_by(Sale.created_at.desc(), Sale.id.desc())\
            .limit(limit).all()

    def active_products(self) -> List[Product]:
        return self.db.query(Product)\
            .options(joinedload(Product.category), joinedload(Product.supplier))\
            .filter(Product.is_active.is_(True))\
            .order_by(Product.name.asc()).all()

    def active_customers(self) -> List[Customer]:
        return self.db.query(Customer)\
            .filter(Customer.is_active.is_(True))\
            .order_by(Customer.total_spent.desc(), Customer.id.asc()).all()

    def count_active_customers(self) -> int:
        return self.db.query(func.count(Customer.id)).filter(Customer.is_active.is_(True)).scalar() or 0

    def expenses(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Expense]:
        query = self.db.query(Expense).filter(Expense.status != "cancelled")
        start, end = day_bounds(start_date, end_date)
        if start:
            query = query.filter(Expense.expense_date >= start)
        if end:
            query = query.filter(Expense.expense_date <= end)
        return query.order_by(Expense.expense_date.desc()).all()
