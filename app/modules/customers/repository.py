# app/modules/customers/repository.py
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from app.shared.database.models import Customer


class CustomersRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, customer_id: int) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    def get_for_update(self, customer_id: int) -> Optional[Customer]:
        """Row lock on backends that support it (no-op on SQLite)"""
        return self.db.query(Customer)\
            .filter(Customer.id == customer_id)\
            .with_for_update()\
            .first()

    def find_conflict(self, email: Optional[str], phone: Optional[str], exclude_id: Optional[int] = None) -> Optional[Customer]:
        conditions = []
        if email:
            conditions.append(Customer.email == email)
        if phone:
            conditions.append(Customer.phone == phone)
        if not conditions:
            return None
        query = self.db.query(Customer).filter(or_(*conditions))
        if exclude_id:
            query = query.filter(Customer.id != exclude_id)
        return query.first()

    def search_query(self, search: Optional[str] = None, customer_type: Optional[str] = None) -> Query:
        query = self.db.query(Customer).filter(Customer.is_active.is_(True))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern)
            ))
        if customer_type:
            query = query.filter(Customer.customer_type == customer_type)
        return query.order_by(Customer.created_at.desc(), Customer.id.desc())

    def create(self, data: dict) -> Customer:
        customer = Customer(**data)
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def save(self, customer: Customer) -> Customer:
        self.db.commit()
        self.db.refresh(customer)
        return customer
