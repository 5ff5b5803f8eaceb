# app/modules/products/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.shared.money import Money


class ProductUnit(str, Enum):
    PIECE = "piece"
    PAIR = "pair"
    BOX = "box"
    KG = "kg"
    LITER = "liter"
    METER = "meter"


class StockOperation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


# ==================== CATEGORIES ====================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    parent_id: Optional[int] = None
    image: Optional[str] = ""
    sort_order: int = 0

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    parent_id: Optional[int] = None
    image: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    image: Optional[str] = None
    is_active: bool
    sort_order: int
    product_count: int = 0
    created_at: datetime


# ==================== PRODUCTS ====================

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    sku: str = Field(..., min_length=1, max_length=64)
    barcode: Optional[str] = Field(None, max_length=64)
    description: Optional[str] = Field(None, max_length=500)
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    brand: Optional[str] = Field(None, max_length=100)
    price: Decimal = Field(..., ge=0)
    cost_price: Decimal = Field(..., ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0, description="Defaults to price")
    stock: int = Field(0, ge=0)
    reorder_level: int = Field(10, ge=0)
    unit: ProductUnit = ProductUnit.PIECE
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100, description="Percent")

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v):
        return v.strip().upper()

    @field_validator("barcode")
    @classmethod
    def empty_barcode_is_none(cls, v):
        return v.strip() or None if v else None

    @model_validator(mode="after")
    def default_selling_price(self):
        if self.selling_price is None:
            self.selling_price = self.price
        return self


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    sku: Optional[str] = Field(None, min_length=1, max_length=64)
    barcode: Optional[str] = Field(None, max_length=64)
    description: Optional[str] = Field(None, max_length=500)
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None
    brand: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    reorder_level: Optional[int] = Field(None, ge=0)
    unit: Optional[ProductUnit] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v):
        return v.strip().upper() if v else v


class StockUpdateRequest(BaseModel):
    quantity: int = Field(..., ge=1)
    operation: StockOperation = Field(..., description="add or subtract")

    @field_validator("operation")
    @classmethod
    def no_set(cls, v):
        if v == StockOperation.SET:
            raise ValueError("Operation must be add or subtract")
        return v


class BulkStockItem(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=0)
    type: StockOperation


class BulkStockUpdateRequest(BaseModel):
    updates: List[BulkStockItem] = Field(..., min_length=1)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sku: str
    barcode: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    brand: Optional[str] = None
    price: Money
    cost_price: Money
    selling_price: Money
    stock: int
    reorder_level: int
    unit: str
    tax_rate: Money
    profit_margin: Money
    stock_status: str
    is_active: bool
    created_at: datetime

    @classmethod
    def from_product(cls, product) -> "ProductResponse":
        response = cls.model_validate(product)
        response.category_name = product.category.name if product.category else None
        response.supplier_name = product.supplier.name if product.supplier else None
        return response
