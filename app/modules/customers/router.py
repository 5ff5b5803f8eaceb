# app/modules/customers/router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import get_current_user, require_roles
from app.core.auth.schemas import MANAGEMENT, SALES_STAFF
from app.shared.database.models import User
from .schemas import CustomerCreate, CustomerType, CustomerUpdate, LoyaltyPointsRequest
from .service import CustomersService

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("")
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match on name, email or phone"),
    customer_type: Optional[CustomerType] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = CustomersService(db)
    return await service.list_customers(
        page, limit, search, customer_type.value if customer_type else None
    )


@router.get("/{customer_id}")
async def get_customer(
    customer_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = CustomersService(db)
    return await service.get_customer(customer_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreate,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    service = CustomersService(db)
    return await service.create_customer(payload, current_user)


@router.put("/{customer_id}")
async def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    service = CustomersService(db)
    return await service.update_customer(customer_id, payload)


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: int,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = CustomersService(db)
    return await service.delete_customer(customer_id)


# ==================== LOYALTY POINTS ====================

@router.post("/{customer_id}/loyalty/add")
async def add_loyalty_points(
    customer_id: int,
    payload: LoyaltyPointsRequest,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = CustomersService(db)
    return await service.add_points(customer_id, payload.points)


@router.post("/{customer_id}/loyalty/redeem")
async def redeem_loyalty_points(
    customer_id: int,
    payload: LoyaltyPointsRequest,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    """Fails with 400 and leaves the balance untouched when points exceed it"""
    service = CustomersService(db)
    return await service.redeem_points(customer_id, payload.points)
