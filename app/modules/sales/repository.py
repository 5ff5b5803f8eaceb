# app/modules/sales/repository.py
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session, joinedload

from app.shared.database.models import Sale, SaleItem


class SalesRepository:
    """
    Data access for sales and their line items
    """

    def __init__(self, db: Session):
        self.db = db

    def _with_relations(self) -> Query:
        return self.db.query(Sale).options(
            joinedload(Sale.items).joinedload(SaleItem.product),
            joinedload(Sale.customer),
            joinedload(Sale.cashier),
            joinedload(Sale.refunded_by)
        )

    def get_by_id(self, sale_id: int) -> Optional[Sale]:
        return self._with_relations().filter(Sale.id == sale_id).first()

    def get_by_invoice_number(self, invoice_number: str) -> Optional[Sale]:
        return self._with_relations()\
            .filter(Sale.invoice_number == invoice_number.strip().upper())\
            .first()

    def search_query(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        payment_method: Optional[str] = None,
        payment_status: Optional[str] = None,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        cashier_id: Optional[int] = None
    ) -> Query:
        query = self.db.query(Sale).options(
            joinedload(Sale.items).joinedload(SaleItem.product),
            joinedload(Sale.customer),
            joinedload(Sale.cashier)
        )

        if start_date:
            query = query.filter(Sale.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Sale.created_at <= datetime.combine(end_date, time.max))
        if payment_method:
            query = query.filter(Sale.payment_method == payment_method)
        if payment_status:
            query = query.filter(Sale.payment_status == payment_status)
        if status:
            query = query.filter(Sale.status == status)
        if customer_id:
            query = query.filter(Sale.customer_id == customer_id)
        if cashier_id:
            query = query.filter(Sale.cashier_id == cashier_id)

        return query.order_by(Sale.created_at.desc(), Sale.id.desc())

    def add(self, sale: Sale) -> Sale:
        self.db.add(sale)
        self.db.flush()
        return sale

    def completed_between(self, start: datetime, end: datetime) -> List[Sale]:
        return self.db.query(Sale).filter(
            Sale.created_at >= start,
            Sale.created_at < end,
            Sale.status == "completed"
        ).all()

    def totals_by_payment_method(self, start: datetime, end: datetime) -> dict:
        rows = self.db.query(Sale.payment_method, func.sum(Sale.total), func.count(Sale.id))\
            .filter(Sale.created_at >= start, Sale.created_at < end, Sale.status == "completed")\
            .group_by(Sale.payment_method).all()
        return {method: {"total": total or 0, "count": count} for method, total, count in rows}
