# app/modules/expenses/service.py
import logging
from datetime import date, datetime, time
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.activity import log_activity
from app.shared.database.models import Expense, User
from app.shared.money import to_money
from app.shared.pagination import paginate
from app.shared.sequences import EXPENSE_PREFIX, next_document_number, run_with_retry
from .schemas import ExpenseCreate, ExpenseResponse, ExpenseStatus, ExpenseUpdate

logger = logging.getLogger(__name__)

EXPENSE_DOCUMENT = "expense"


class ExpensesService:
    """
    Operating expenses, numbered EXP-YYYYMMDD-NNNN with the same allocator
    as invoices
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, expense_id: int) -> Expense:
        expense = self.db.query(Expense).filter(Expense.id == expense_id).first()
        if not expense:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
        return expense

    def _filtered(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        expense_status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ):
        query = self.db.query(Expense)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Expense.title.ilike(pattern), Expense.vendor.ilike(pattern)))
        if category:
            query = query.filter(Expense.category == category)
        if expense_status:
            query = query.filter(Expense.status == expense_status)
        if start_date:
            query = query.filter(Expense.expense_date >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Expense.expense_date <= datetime.combine(end_date, time.max))
        return query

    async def list_expenses(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        category: Optional[str] = None,
        expense_status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> dict:
        query = self._filtered(search, category, expense_status, start_date, end_date)
        total_amount = query.with_entities(func.sum(Expense.amount))\
            .filter(Expense.status != ExpenseStatus.CANCELLED.value).scalar() or 0

        expenses, pagination = paginate(
            query.order_by(Expense.expense_date.desc(), Expense.id.desc()), page, limit
        )
        return {
            "success": True,
            "count": len(expenses),
            "pagination": pagination,
            "summary": {"total_amount": float(to_money(total_amount))},
            "data": [ExpenseResponse.model_validate(e) for e in expenses]
        }

    async def get_expense(self, expense_id: int) -> dict:
        return {"success": True, "data": ExpenseResponse.model_validate(self._get_or_404(expense_id))}

    async def create_expense(self, payload: ExpenseCreate, current_user: User) -> dict:
        try:
            expense_id = run_with_retry(
                lambda: self._create_once(payload, current_user),
                self.db,
                attempts=settings.sequence_retry_attempts
            )
        except IntegrityError:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Could not allocate an expense number, please retry"
            )

        expense = self._get_or_404(expense_id)
        return {
            "success": True,
            "message": "Expense created successfully",
            "data": ExpenseResponse.model_validate(expense)
        }

    def _create_once(self, payload: ExpenseCreate, current_user: User) -> int:
        try:
            data = payload.model_dump(exclude_none=True)
            for key in ("category", "payment_method", "recurring_period", "status"):
                if key in data:
                    data[key] = data[key].value
            data["amount"] = to_money(payload.amount)
            data.setdefault("expense_date", datetime.now())

            expense = Expense(
                **data,
                expense_number=next_document_number(self.db, EXPENSE_DOCUMENT, EXPENSE_PREFIX),
                created_by_id=current_user.id
            )
            self.db.add(expense)
            self.db.flush()
            log_activity(
                self.db, current_user.id, "expense_created",
                f"Expense {expense.expense_number}: {expense.title} ({expense.amount})",
                "expense", expense.id
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Expense {expense.expense_number} created by user {current_user.id}")
        return expense.id

    async def update_expense(self, expense_id: int, payload: ExpenseUpdate) -> dict:
        expense = self._get_or_404(expense_id)
        changes = payload.model_dump(exclude_unset=True)

        is_recurring = changes.get("is_recurring", expense.is_recurring)
        period = changes.get("recurring_period", expense.recurring_period)
        if is_recurring and not period:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="recurring_period is required for recurring expenses"
            )

        for key, value in changes.items():
            if hasattr(value, "value"):
                value = value.value
            setattr(expense, key, value)

        self.db.commit()
        self.db.refresh(expense)
        return {"success": True, "data": ExpenseResponse.model_validate(expense)}

    async def approve_expense(self, expense_id: int, approver: User) -> dict:
        """Mark a pending expense as paid"""
        expense = self._get_or_404(expense_id)
        if expense.status != ExpenseStatus.PENDING.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only pending expenses can be approved")

        expense.status = ExpenseStatus.PAID.value
        expense.approved_by_id = approver.id
        expense.approval_date = datetime.now()
        self.db.commit()
        self.db.refresh(expense)
        return {"success": True, "data": ExpenseResponse.model_validate(expense)}

    async def cancel_expense(self, expense_id: int) -> dict:
        """Expenses keep their number; cancelling takes them out of totals"""
        expense = self._get_or_404(expense_id)
        expense.status = ExpenseStatus.CANCELLED.value
        self.db.commit()
        return {"success": True, "message": "Expense cancelled successfully"}
