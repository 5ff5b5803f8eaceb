# app/modules/suppliers/service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.shared.database.models import Supplier, User
from app.shared.money import ZERO, to_money
from .schemas import SupplierCreate, SupplierPurchaseRequest, SupplierResponse, SupplierUpdate

logger = logging.getLogger(__name__)


def record_supplier_purchase(supplier: Supplier, order_value: Decimal, paid: bool = True) -> Supplier:
    """Cumulative purchase stats, mirroring the customer ledger"""
    value = to_money(order_value)
    supplier.total_purchases = to_money(Decimal(supplier.total_purchases or 0) + value)
    supplier.total_orders = (supplier.total_orders or 0) + 1
    supplier.average_order_value = (
        to_money(supplier.total_purchases / supplier.total_orders) if supplier.total_orders else ZERO
    )
    supplier.last_order = datetime.now()
    if not paid:
        supplier.outstanding_balance = to_money(Decimal(supplier.outstanding_balance or 0) + value)
    return supplier


class SuppliersService:

    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, supplier_id: int) -> Supplier:
        supplier = self.db.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
        return supplier

    def _ensure_unique_email(self, email: Optional[str], exclude_id: Optional[int] = None):
        if not email:
            return
        query = self.db.query(Supplier).filter(Supplier.email == email)
        if exclude_id:
            query = query.filter(Supplier.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A supplier with this email already exists")

    async def list_suppliers(self, search: Optional[str] = None, preferred_only: bool = False) -> dict:
        query = self.db.query(Supplier).filter(Supplier.is_active.is_(True))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Supplier.name.ilike(pattern),
                Supplier.email.ilike(pattern),
                Supplier.contact_person.ilike(pattern)
            ))
        if preferred_only:
            query = query.filter(Supplier.is_preferred.is_(True))
        suppliers = query.order_by(Supplier.name.asc()).all()
        return {
            "success": True,
            "count": len(suppliers),
            "data": [SupplierResponse.model_validate(s) for s in suppliers]
        }

    async def get_supplier(self, supplier_id: int) -> dict:
        return {"success": True, "data": SupplierResponse.model_validate(self._get_or_404(supplier_id))}

    async def create_supplier(self, payload: SupplierCreate, current_user: User) -> dict:
        self._ensure_unique_email(payload.email)
        data = payload.model_dump()
        data["payment_terms"] = payload.payment_terms.value
        supplier = Supplier(**data, created_by_id=current_user.id)
        self.db.add(supplier)
        self.db.commit()
        self.db.refresh(supplier)
        return {
            "success": True,
            "message": "Supplier created successfully",
            "data": SupplierResponse.model_validate(supplier)
        }

    async def update_supplier(self, supplier_id: int, payload: SupplierUpdate) -> dict:
        supplier = self._get_or_404(supplier_id)
        changes = payload.model_dump(exclude_unset=True)
        self._ensure_unique_email(changes.get("email"), exclude_id=supplier.id)
        for key, value in changes.items():
            if hasattr(value, "value"):
                value = value.value
            setattr(supplier, key, value)
        self.db.commit()
        self.db.refresh(supplier)
        return {"success": True, "data": SupplierResponse.model_validate(supplier)}

    async def delete_supplier(self, supplier_id: int) -> dict:
        supplier = self._get_or_404(supplier_id)
        supplier.is_active = False
        self.db.commit()
        return {"success": True, "message": "Supplier deleted successfully"}

    async def record_purchase(self, supplier_id: int, payload: SupplierPurchaseRequest) -> dict:
        supplier = self._get_or_404(supplier_id)
        if not supplier.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Supplier is inactive")

        credit_limit = Decimal(supplier.credit_limit or 0)
        if not payload.paid and credit_limit > 0:
            if Decimal(supplier.outstanding_balance or 0) + payload.amount > credit_limit:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Purchase exceeds the supplier credit limit")

        record_supplier_purchase(supplier, payload.amount, payload.paid)
        self.db.commit()
        self.db.refresh(supplier)
        logger.info(f"Recorded purchase of {payload.amount} from supplier {supplier.id}")
        return {"success": True, "data": SupplierResponse.model_validate(supplier)}
