# app/modules/suppliers/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.shared.money import Money


class PaymentTerms(str, Enum):
    IMMEDIATE = "immediate"
    DAYS_15 = "15_days"
    DAYS_30 = "30_days"
    DAYS_45 = "45_days"
    DAYS_60 = "60_days"
    DAYS_90 = "90_days"


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: str = Field(..., min_length=5, max_length=50)
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = "Sri Lanka"
    contact_person: Optional[str] = Field(None, max_length=100)
    contact_phone: Optional[str] = Field(None, max_length=50)
    tax_id: Optional[str] = Field(None, max_length=50)
    payment_terms: PaymentTerms = PaymentTerms.DAYS_30
    credit_limit: Decimal = Field(Decimal("0"), ge=0)
    rating: int = Field(3, ge=1, le=5)
    is_preferred: bool = False
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower() if v else v


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=5, max_length=50)
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    tax_id: Optional[str] = None
    payment_terms: Optional[PaymentTerms] = None
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    rating: Optional[int] = Field(None, ge=1, le=5)
    is_preferred: Optional[bool] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class SupplierPurchaseRequest(BaseModel):
    """A purchase order delivered by the supplier"""
    amount: Decimal = Field(..., gt=0)
    paid: bool = Field(True, description="Unpaid purchases are added to the outstanding balance")


class SupplierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    phone: str
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    tax_id: Optional[str] = None
    payment_terms: str
    credit_limit: Money
    outstanding_balance: Money
    total_purchases: Money
    total_orders: int
    average_order_value: Money
    rating: int
    is_active: bool
    is_preferred: bool
    status: str
    last_order: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
