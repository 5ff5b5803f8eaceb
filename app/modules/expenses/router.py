# app/modules/expenses/router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import require_roles
from app.core.auth.schemas import ADMIN_ONLY, MANAGEMENT
from app.shared.database.models import User
from .schemas import ExpenseCategory, ExpenseCreate, ExpenseStatus, ExpenseUpdate
from .service import ExpensesService

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("")
async def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match on title or vendor"),
    category: Optional[ExpenseCategory] = Query(None),
    expense_status: Optional[ExpenseStatus] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ExpensesService(db)
    return await service.list_expenses(
        page, limit, search,
        category.value if category else None,
        expense_status.value if expense_status else None,
        start_date, end_date
    )


@router.get("/{expense_id}")
async def get_expense(
    expense_id: int,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ExpensesService(db)
    return await service.get_expense(expense_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ExpensesService(db)
    return await service.create_expense(payload, current_user)


@router.put("/{expense_id}")
async def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    current_user: User = Depends(require_roles(MANAGEMENT)),
    db: Session = Depends(get_db)
):
    service = ExpensesService(db)
    return await service.update_expense(expense_id, payload)


@router.post("/{expense_id}/approve")
async def approve_expense(
    expense_id: int,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = ExpensesService(db)
    return await service.approve_expense(expense_id, current_user)


@router.delete("/{expense_id}")
async def cancel_expense(
    expense_id: int,
    current_user: User = Depends(require_roles(ADMIN_ONLY)),
    db: Session = Depends(get_db)
):
    service = ExpensesService(db)
    return await service.cancel_expense(expense_id)
