from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric,
    UniqueConstraint, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship
from app.config.database import Base

MONEY = Numeric(12, 2)

class TimestampMixin:
    """Mixin for automatic timestamps"""
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

# ===== USERS =====

class User(Base, TimestampMixin):
    """System user (admin, manager, cashier, staff)"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(String(20), default='staff', nullable=False)
    phone = Column(String(50))
    permissions = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime)

    # Relationships
    sales = relationship("Sale", back_populates="cashier", foreign_keys="Sale.cashier_id")
    expenses = relationship("Expense", back_populates="created_by", foreign_keys="Expense.created_by_id")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

class Activity(Base):
    """Audit trail entry (logins, sales, refunds)"""
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50))
    entity_id = Column(Integer)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    user = relationship("User")

# ===== CATALOG =====

class Category(Base, TimestampMixin):
    """Product category"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    slug = Column(String(60), unique=True, index=True)
    description = Column(String(200))
    parent_id = Column(Integer, ForeignKey("categories.id"))
    image = Column(String(255), default="")
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"))

    # Relationships
    parent = relationship("Category", remote_side=[id])
    products = relationship("Product", back_populates="category")

class Supplier(Base, TimestampMixin):
    """Supplier"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), unique=True)
    phone = Column(String(50), nullable=False)
    street = Column(String(255))
    city = Column(String(100))
    state = Column(String(100))
    zip_code = Column(String(20))
    country = Column(String(100), default="Sri Lanka")
    contact_person = Column(String(100))
    contact_phone = Column(String(50))
    tax_id = Column(String(50))
    payment_terms = Column(String(20), default='30_days', nullable=False)
    credit_limit = Column(MONEY, default=0, nullable=False)
    outstanding_balance = Column(MONEY, default=0, nullable=False)
    total_purchases = Column(MONEY, default=0, nullable=False)
    total_orders = Column(Integer, default=0, nullable=False)
    average_order_value = Column(MONEY, default=0, nullable=False)
    rating = Column(Integer, default=3, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_preferred = Column(Boolean, default=False, nullable=False)
    last_order = Column(DateTime)
    notes = Column(Text)
    created_by_id = Column(Integer, ForeignKey("users.id"))

    __table_args__ = (
        CheckConstraint('rating BETWEEN 1 AND 5', name='ck_suppliers_rating'),
        CheckConstraint('total_purchases >= 0', name='ck_suppliers_total_purchases'),
    )

    products = relationship("Product", back_populates="supplier")

    @property
    def status(self) -> str:
        if not self.is_active:
            return "inactive"
        if self.is_preferred:
            return "preferred"
        if self.rating >= 4:
            return "excellent"
        if self.rating >= 3:
            return "good"
        return "fair"

class Product(Base, TimestampMixin):
    """Inventory product"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    sku = Column(String(64), unique=True, nullable=False, index=True)
    barcode = Column(String(64), unique=True)
    description = Column(String(500))
    category_id = Column(Integer, ForeignKey("categories.id"), index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), index=True)
    brand = Column(String(100))
    price = Column(MONEY, nullable=False)
    cost_price = Column(MONEY, nullable=False)
    selling_price = Column(MONEY, nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    reorder_level = Column(Integer, default=10, nullable=False)
    unit = Column(String(20), default='piece', nullable=False)
    tax_rate = Column(Numeric(5, 2), default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"))

    __table_args__ = (
        CheckConstraint('stock >= 0', name='ck_products_stock'),
        CheckConstraint('price >= 0 AND cost_price >= 0 AND selling_price >= 0', name='ck_products_prices'),
        CheckConstraint('tax_rate >= 0 AND tax_rate <= 100', name='ck_products_tax_rate'),
    )

    # Relationships
    category = relationship("Category", back_populates="products")
    supplier = relationship("Supplier", back_populates="products")

    @property
    def profit_margin(self) -> Decimal:
        if self.selling_price and self.selling_price > 0:
            margin = (Decimal(self.selling_price) - Decimal(self.cost_price)) / Decimal(self.selling_price) * 100
            return margin.quantize(Decimal("0.01"))
        return Decimal("0")

    @property
    def stock_status(self) -> str:
        if self.stock == 0:
            return "out_of_stock"
        if self.stock <= self.reorder_level:
            return "low_stock"
        return "in_stock"

# ===== CUSTOMERS =====

class Customer(Base, TimestampMixin):
    """Customer with cumulative purchase stats and loyalty balance"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), unique=True)
    phone = Column(String(50), unique=True, nullable=False)
    street = Column(String(255))
    city = Column(String(100))
    state = Column(String(100))
    zip_code = Column(String(20))
    country = Column(String(100), default="Sri Lanka")
    date_of_birth = Column(Date)
    gender = Column(String(10))
    loyalty_points = Column(Integer, default=0, nullable=False)
    total_spent = Column(MONEY, default=0, nullable=False)
    total_orders = Column(Integer, default=0, nullable=False)
    average_order_value = Column(MONEY, default=0, nullable=False)
    customer_type = Column(String(20), default='regular', nullable=False)
    discount_percentage = Column(Numeric(5, 2), default=0, nullable=False)
    preferred_payment_method = Column(String(20), default='cash')
    last_purchase = Column(DateTime)
    notes = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"))

    __table_args__ = (
        CheckConstraint('loyalty_points >= 0', name='ck_customers_loyalty_points'),
        CheckConstraint('total_spent >= 0', name='ck_customers_total_spent'),
        CheckConstraint('total_orders >= 0', name='ck_customers_total_orders'),
    )

    sales = relationship("Sale", back_populates="customer")

    @property
    def status(self) -> str:
        if not self.is_active:
            return "inactive"
        if self.customer_type == "vip":
            return "vip"
        if self.total_spent and self.total_spent > 100000:
            return "premium"
        return "regular"

    @property
    def full_address(self) -> str:
        parts = [self.street, self.city, self.state, self.zip_code, self.country]
        return ", ".join(p for p in parts if p)

# ===== SALES =====

class Sale(Base, TimestampMixin):
    """Sale / invoice header"""
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True)
    subtotal = Column(MONEY, nullable=False)
    discount = Column(MONEY, default=0, nullable=False)
    tax = Column(MONEY, default=0, nullable=False)
    shipping = Column(MONEY, default=0, nullable=False)
    total = Column(MONEY, nullable=False)
    gross_profit = Column(MONEY, default=0, nullable=False)
    net_profit = Column(MONEY, default=0, nullable=False)
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), default='pending', nullable=False)
    amount_paid = Column(MONEY, default=0, nullable=False)
    change = Column(MONEY, default=0, nullable=False)
    sale_type = Column(String(20), default='retail', nullable=False)
    status = Column(String(20), default='completed', nullable=False, index=True)
    notes = Column(Text)
    cashier_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    refunded_by_id = Column(Integer, ForeignKey("users.id"))
    refunded_at = Column(DateTime)
    refund_reason = Column(Text)

    __table_args__ = (
        CheckConstraint('subtotal >= 0', name='ck_sales_subtotal'),
        CheckConstraint('discount >= 0 AND tax >= 0 AND shipping >= 0', name='ck_sales_adjustments'),
        CheckConstraint('total >= 0', name='ck_sales_total'),
        CheckConstraint('amount_paid >= 0', name='ck_sales_amount_paid'),
    )

    # Relationships
    cashier = relationship("User", back_populates="sales", foreign_keys=[cashier_id])
    refunded_by = relationship("User", foreign_keys=[refunded_by_id])
    customer = relationship("Customer", back_populates="sales")
    items = relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        cascade="all, delete-orphan"
    )

    @property
    def balance_due(self) -> Decimal:
        return max(Decimal(self.total) - Decimal(self.amount_paid), Decimal("0.00"))

class SaleItem(Base):
    """Sale line item"""
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)
    cost_price = Column(MONEY, default=0, nullable=False)
    discount = Column(MONEY, default=0, nullable=False)
    tax = Column(MONEY, default=0, nullable=False)
    total = Column(MONEY, nullable=False)
    profit = Column(MONEY, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_sale_items_quantity'),
        CheckConstraint('unit_price >= 0 AND cost_price >= 0', name='ck_sale_items_prices'),
        CheckConstraint('discount >= 0 AND tax >= 0', name='ck_sale_items_adjustments'),
        CheckConstraint('total >= 0', name='ck_sale_items_total'),
    )

    # Relationships
    sale = relationship("Sale", back_populates="items")
    product = relationship("Product")

# ===== EXPENSES =====

class Expense(Base, TimestampMixin):
    """Operating expense"""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    expense_number = Column(String(32), unique=True, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    category = Column(String(40), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    payment_method = Column(String(20), default='cash', nullable=False)
    vendor = Column(String(200))
    receipt_number = Column(String(100))
    expense_date = Column(DateTime, default=datetime.now, nullable=False, index=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurring_period = Column(String(20))
    status = Column(String(20), default='paid', nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"))
    approval_date = Column(DateTime)
    notes = Column(Text)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        CheckConstraint('amount >= 0', name='ck_expenses_amount'),
    )

    # Relationships
    created_by = relationship("User", back_populates="expenses", foreign_keys=[created_by_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])

# ===== DOCUMENT NUMBERING =====

class DocumentSequence(Base):
    """Per-day atomic counter behind invoice and expense numbers"""
    __tablename__ = "document_sequences"

    id = Column(Integer, primary_key=True, index=True)
    document_type = Column(String(20), nullable=False)
    sequence_date = Column(Date, nullable=False)
    next_number = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint('document_type', 'sequence_date', name='uq_document_sequences_type_date'),
    )
