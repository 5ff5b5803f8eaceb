# app/modules/customers/schemas.py
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.shared.money import Money


class CustomerType(str, Enum):
    REGULAR = "regular"
    WHOLESALE = "wholesale"
    VIP = "vip"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: str = Field(..., min_length=5, max_length=50)
    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field("Sri Lanka", max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    customer_type: CustomerType = CustomerType.REGULAR
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    preferred_payment_method: Optional[str] = Field(
        "cash", pattern=r"^(cash|card|upi|credit|bank_transfer)$"
    )
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower() if v else v

    @field_validator("name", "phone")
    @classmethod
    def strip(cls, v):
        return v.strip()


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=5, max_length=50)
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    customer_type: Optional[CustomerType] = None
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    preferred_payment_method: Optional[str] = Field(
        None, pattern=r"^(cash|card|upi|credit|bank_transfer)$"
    )
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class LoyaltyPointsRequest(BaseModel):
    points: int = Field(..., ge=0, description="Number of points")


class CustomerResponse(BaseModel):
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
    full_address: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    loyalty_points: int
    total_spent: Money
    total_orders: int
    average_order_value: Money
    customer_type: str
    status: str
    discount_percentage: Money
    preferred_payment_method: Optional[str] = None
    last_purchase: Optional[datetime] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
