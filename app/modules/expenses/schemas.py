# app/modules/expenses/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.shared.money import Money


class ExpenseCategory(str, Enum):
    RENT = "rent"
    UTILITIES = "utilities"
    SALARIES = "salaries"
    INVENTORY = "inventory"
    MARKETING = "marketing"
    MAINTENANCE = "maintenance"
    EQUIPMENT = "equipment"
    INSURANCE = "insurance"
    TAXES = "taxes"
    SUPPLIES = "supplies"
    TRANSPORT = "transport"
    COMMUNICATION = "communication"
    PROFESSIONAL_SERVICES = "professional_services"
    OTHER = "other"


class ExpensePaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"


class RecurringPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class ExpenseCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category: ExpenseCategory
    amount: Decimal = Field(..., ge=0)
    payment_method: ExpensePaymentMethod = ExpensePaymentMethod.CASH
    vendor: Optional[str] = Field(None, max_length=200)
    receipt_number: Optional[str] = Field(None, max_length=100)
    expense_date: Optional[datetime] = None
    is_recurring: bool = False
    recurring_period: Optional[RecurringPeriod] = None
    status: ExpenseStatus = ExpenseStatus.PAID
    notes: Optional[str] = None

    @model_validator(mode="after")
    def recurring_needs_period(self):
        if self.is_recurring and self.recurring_period is None:
            raise ValueError("recurring_period is required for recurring expenses")
        return self


class ExpenseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: Optional[ExpensePaymentMethod] = None
    vendor: Optional[str] = None
    receipt_number: Optional[str] = None
    expense_date: Optional[datetime] = None
    is_recurring: Optional[bool] = None
    recurring_period: Optional[RecurringPeriod] = None
    status: Optional[ExpenseStatus] = None
    notes: Optional[str] = None


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    expense_number: str
    title: str
    description: Optional[str] = None
    category: str
    amount: Money
    payment_method: str
    vendor: Optional[str] = None
    receipt_number: Optional[str] = None
    expense_date: datetime
    is_recurring: bool
    recurring_period: Optional[str] = None
    status: str
    approved_by_id: Optional[int] = None
    approval_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_by_id: int
    created_at: datetime
