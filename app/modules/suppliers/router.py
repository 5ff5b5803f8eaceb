# app/modules/suppliers/router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import get_current_user, require_roles
from app.core.auth.schemas import ADMIN_ONLY, MANAGEMENT
from app.shared.database.models import User
from .schemas import SupplierCreate, SupplierPurchaseRequest, SupplierUpdate
from .service import SuppliersService

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@router.get("")
async def list_suppliers(
    search: Optional[str] = Query(None),
    preferred_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SuppliersService(db)
    return await service.list_suppliers(search, preferred_only)


@router.get("/{supplier_id}")
async def get_supplier(
    supplier_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SuppliersService(db)
    return await service.get_supplier(supplier_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_supplier(
    payload: SupplierCreate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = SuppliersService(db)
    return await service.create_supplier(payload, current_user)


@router.put("/{supplier_id}")
async def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = SuppliersService(db)
    return await service.update_supplier(supplier_id, payload)


@router.delete("/{supplier_id}")
async def delete_supplier(
    supplier_id: int,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = SuppliersService(db)
    return await service.delete_supplier(supplier_id)


@router.post("/{supplier_id}/purchases")
async def record_purchase(
    supplier_id: int,
    payload: SupplierPurchaseRequest,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = SuppliersService(db)
    return await service.record_purchase(supplier_id, payload)
