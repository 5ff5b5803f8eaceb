# app/modules/sales/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.shared.money import Money

# ==================== ENUMS ====================

class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    CREDIT = "credit"
    BANK_TRANSFER = "bank_transfer"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    REFUNDED = "refunded"

class SaleType(str, Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"
    ONLINE = "online"

class SaleStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PENDING = "pending"

class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"

class Settlement(str, Enum):
    COLLECT = "collect"
    REFUND = "refund"
    NONE = "none"

# ==================== REQUEST SCHEMAS ====================

class SaleItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1, description="Quantity must be at least 1")
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Defaults to the product selling price")
    discount: Decimal = Field(Decimal("0"), ge=0)
    tax: Optional[Decimal] = Field(None, ge=0, description="Derived from the product tax rate when omitted")


class SaleCreateRequest(BaseModel):
    items: List[SaleItemCreate] = Field(..., min_length=1, description="At least one item is required")
    customer_id: Optional[int] = None
    payment_method: PaymentMethod
    amount_paid: Optional[Decimal] = Field(None, ge=0, description="Defaults to the sale total")
    discount: Decimal = Field(Decimal("0"), ge=0)
    discount_type: DiscountType = DiscountType.FIXED
    tax: Decimal = Field(Decimal("0"), ge=0)
    shipping: Decimal = Field(Decimal("0"), ge=0)
    sale_type: SaleType = SaleType.RETAIL
    notes: Optional[str] = Field(None, max_length=1000)


class RefundRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000, description="Refund reason is required")

    @field_validator("reason")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("Refund reason is required")
        return v.strip()


class PaymentUpdateRequest(BaseModel):
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None

    @field_validator("payment_status")
    @classmethod
    def not_refunded(cls, v):
        if v == PaymentStatus.REFUNDED:
            raise ValueError("Use the refund operation to refund a sale")
        return v


class QuoteLine(BaseModel):
    """Cart line; a negative quantity is a returned item"""
    product_id: int
    quantity: int
    unit_price: Optional[Decimal] = Field(None, ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    tax: Optional[Decimal] = Field(None, ge=0)
    source_sale_item_id: Optional[int] = None

    @field_validator("quantity")
    @classmethod
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("Quantity cannot be zero")
        return v


class QuoteRequest(BaseModel):
    items: List[QuoteLine] = Field(..., min_length=1)
    discount: Decimal = Field(Decimal("0"), ge=0)
    discount_type: DiscountType = DiscountType.FIXED
    tax: Decimal = Field(Decimal("0"), ge=0)
    shipping: Decimal = Field(Decimal("0"), ge=0)
    amount_paid: Optional[Decimal] = Field(None, ge=0)


class ReturnLineSelection(BaseModel):
    sale_item_id: int
    quantity: Optional[int] = Field(None, ge=1, description="Defaults to the full sold quantity")


class ReturnLinesRequest(BaseModel):
    items: Optional[List[ReturnLineSelection]] = Field(
        None, description="Lines to return; all lines when omitted"
    )

# ==================== RESPONSE SCHEMAS ====================

class ProductRef(BaseModel):
    kind: Literal["ref"] = "ref"
    id: int


class PopulatedProduct(BaseModel):
    kind: Literal["populated"] = "populated"
    id: int
    name: str
    sku: str
    barcode: Optional[str] = None
    unit: str
    price: Money
    selling_price: Money
    cost_price: Money
    tax_rate: Money


# A sale line carries either a bare id or the full product, never something in between
ProductField = Annotated[Union[ProductRef, PopulatedProduct], Field(discriminator="kind")]


class PartySummary(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class SaleItemResponse(BaseModel):
    id: int
    product: ProductField
    quantity: int
    unit_price: Money
    cost_price: Money
    discount: Money
    tax: Money
    total: Money
    profit: Money


class SaleResponse(BaseModel):
    id: int
    invoice_number: str
    items: List[SaleItemResponse]
    subtotal: Money
    discount: Money
    tax: Money
    shipping: Money
    total: Money
    gross_profit: Money
    net_profit: Money
    payment_method: str
    payment_status: str
    amount_paid: Money
    change: Money
    balance_due: Money
    sale_type: str
    status: str
    notes: Optional[str] = None
    customer: Optional[PartySummary] = None
    cashier: Optional[PartySummary] = None
    refunded_by: Optional[PartySummary] = None
    refunded_at: Optional[datetime] = None
    refund_reason: Optional[str] = None
    created_at: datetime


class QuoteLineResponse(BaseModel):
    product_id: int
    name: str
    quantity: int
    unit_price: Money
    discount: Money
    tax: Money
    total: Money
    is_return: bool
    source_sale_item_id: Optional[int] = None


class QuoteResponse(BaseModel):
    lines: List[QuoteLineResponse]
    purchase_subtotal: Money
    return_subtotal: Money
    subtotal: Money
    discount: Money
    tax: Money
    shipping: Money
    total: Money
    settlement: Settlement
    amount_due: Money
    change: Optional[Money] = None
    balance_due: Optional[Money] = None
