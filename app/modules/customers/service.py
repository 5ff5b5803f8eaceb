# app/modules/customers/service.py
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.shared.database.models import Customer, User
from app.shared.pagination import paginate
from .ledger import InsufficientLoyaltyPoints, add_loyalty_points, redeem_loyalty_points
from .repository import CustomersRepository
from .schemas import CustomerCreate, CustomerResponse, CustomerUpdate

logger = logging.getLogger(__name__)


class CustomersService:
    """
    Customer CRUD and loyalty balance operations
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = CustomersRepository(db)

    def _get_or_404(self, customer_id: int) -> Customer:
        customer = self.repository.get_by_id(customer_id)
        if not customer:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
        return customer

    def _lock_or_404(self, customer_id: int) -> Customer:
        customer = self.repository.get_for_update(customer_id)
        if not customer:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
        return customer

    def _ensure_unique(self, email: Optional[str], phone: Optional[str], exclude_id: Optional[int] = None):
        conflict = self.repository.find_conflict(email, phone, exclude_id)
        if conflict:
            field = "email" if email and conflict.email == email else "phone"
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A customer with this {field} already exists"
            )

    async def list_customers(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        customer_type: Optional[str] = None
    ) -> dict:
        query = self.repository.search_query(search, customer_type)
        customers, pagination = paginate(query, page, limit)
        return {
            "success": True,
            "count": len(customers),
            "pagination": pagination,
            "data": [CustomerResponse.model_validate(c) for c in customers]
        }

    async def get_customer(self, customer_id: int) -> dict:
        customer = self._get_or_404(customer_id)
        return {"success": True, "data": CustomerResponse.model_validate(customer)}

    async def create_customer(self, payload: CustomerCreate, current_user: User) -> dict:
        self._ensure_unique(payload.email, payload.phone)

        data = payload.model_dump()
        data["gender"] = payload.gender.value if payload.gender else None
        data["customer_type"] = payload.customer_type.value
        data["created_by_id"] = current_user.id

        customer = self.repository.create(data)
        logger.info(f"Customer {customer.id} created by user {current_user.id}")
        return {
            "success": True,
            "message": "Customer created successfully",
            "data": CustomerResponse.model_validate(customer)
        }

    async def update_customer(self, customer_id: int, payload: CustomerUpdate) -> dict:
        customer = self._get_or_404(customer_id)
        changes = payload.model_dump(exclude_unset=True)
        self._ensure_unique(changes.get("email"), changes.get("phone"), exclude_id=customer.id)

        for key, value in changes.items():
            if hasattr(value, "value"):
                value = value.value
            setattr(customer, key, value)

        customer = self.repository.save(customer)
        return {
            "success": True,
            "message": "Customer updated successfully",
            "data": CustomerResponse.model_validate(customer)
        }

    async def delete_customer(self, customer_id: int) -> dict:
        """Soft delete: sales keep pointing at the record"""
        customer = self._get_or_404(customer_id)
        customer.is_active = False
        self.repository.save(customer)
        return {"success": True, "message": "Customer deleted successfully"}

    # ==================== LOYALTY ====================

    async def add_points(self, customer_id: int, points: int) -> dict:
        customer = self._lock_or_404(customer_id)
        add_loyalty_points(customer, points)
        customer = self.repository.save(customer)
        return {
            "success": True,
            "message": f"{points} loyalty points added",
            "data": CustomerResponse.model_validate(customer)
        }

    async def redeem_points(self, customer_id: int, points: int) -> dict:
        customer = self._lock_or_404(customer_id)
        try:
            redeem_loyalty_points(customer, points)
        except InsufficientLoyaltyPoints as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

        customer = self.repository.save(customer)
        return {
            "success": True,
            "message": f"{points} loyalty points redeemed",
            "data": CustomerResponse.model_validate(customer)
        }
