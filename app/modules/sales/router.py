# app/modules/sales/router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import get_current_user, require_roles
from app.core.auth.schemas import MANAGEMENT, SALES_STAFF
from app.shared.database.models import User
from .schemas import (
    PaymentMethod, PaymentStatus, PaymentUpdateRequest, QuoteRequest, RefundRequest,
    ReturnLinesRequest, SaleCreateRequest, SaleStatus
)
from .service import SalesService

router = APIRouter(prefix="/sales", tags=["Sales"])

# ==================== CHECKOUT ====================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_sale(
    payload: SaleCreateRequest,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    """
    Register a sale

    - Invoice number allocated atomically (INV-YYYYMMDD-NNNN)
    - Line tax derived from the product tax rate when not given
    - Stock decremented; fails with 400 if any product runs short
    - Customer stats, tier and loyalty points updated in the same transaction
    """
    service = SalesService(db)
    return await service.create_sale(payload, current_user)


@router.post("/quote")
async def quote_cart(
    payload: QuoteRequest,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    """
    Price a cart without saving it. Lines with a negative quantity are
    returns; `settlement` tells whether to collect from or refund the customer.
    """
    service = SalesService(db)
    return await service.quote(payload)

# ==================== QUERIES ====================

@router.get("")
async def list_sales(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    sale_status: Optional[SaleStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = Query(None),
    populate: bool = Query(False, description="Embed full products in sale lines"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SalesService(db)
    return await service.list_sales(
        page, limit, start_date, end_date,
        payment_method.value if payment_method else None,
        payment_status.value if payment_status else None,
        sale_status.value if sale_status else None,
        customer_id, populate
    )


@router.get("/stats/overview")
async def sales_stats_overview(
    day: Optional[date] = Query(None, description="Defaults to today"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SalesService(db)
    return await service.get_stats_overview(day)


@router.get("/invoice/{invoice_number}")
async def get_sale_by_invoice(
    invoice_number: str,
    populate: bool = Query(True),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SalesService(db)
    return await service.get_sale_by_invoice(invoice_number, populate)


@router.get("/{sale_id}")
async def get_sale(
    sale_id: int,
    populate: bool = Query(True),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SalesService(db)
    return await service.get_sale(sale_id, populate)

# ==================== REFUNDS & PAYMENTS ====================

@router.post("/{sale_id}/refund")
async def refund_sale(
    sale_id: int,
    payload: RefundRequest,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = SalesService(db)
    return await service.refund_sale(sale_id, payload, current_user)


@router.patch("/{sale_id}/payment")
async def update_payment(
    sale_id: int,
    payload: PaymentUpdateRequest,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    """Record a further payment; change and payment status are recomputed"""
    service = SalesService(db)
    return await service.update_payment(sale_id, payload)


@router.post("/{sale_id}/return-lines")
async def build_return_lines(
    sale_id: int,
    payload: Optional[ReturnLinesRequest] = None,
    current_user: User = Depends(require_roles(SALES_STAFF)),
    db: Session = Depends(get_db)
):
    """Cart lines with negative quantities for items of a previous invoice"""
    service = SalesService(db)
    return await service.build_return_lines(sale_id, payload or ReturnLinesRequest())
