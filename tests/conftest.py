import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["RECEIPT_OUTPUT_DIR"] = os.path.join(os.path.dirname(__file__), ".receipts")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.config.database import Base, SessionLocal, engine
from app.core.auth.security import create_access_token, hash_password
from app.main import app
from app.shared.database.models import Category, Customer, Product, User


def money(value) -> Decimal:
    """JSON money values arrive as floats; compare them as 2-place decimals"""
    return Decimal(str(value)).quantize(Decimal("0.01"))


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    return TestClient(app)


def make_user(db, username: str, role: str, password: str = "secret123") -> User:
    user = User(
        username=username,
        email=f"{username}@store.example.com",
        password_hash=hash_password(password),
        first_name=username.capitalize(),
        last_name="Tester",
        role=role,
        permissions=[]
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


@pytest.fixture()
def admin(db):
    return make_user(db, "admin", "admin")


@pytest.fixture()
def cashier(db):
    return make_user(db, "cashier", "cashier")


@pytest.fixture()
def staff(db):
    return make_user(db, "staff", "staff")


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def cashier_headers(cashier):
    return auth_headers(cashier)


@pytest.fixture()
def staff_headers(staff):
    return auth_headers(staff)


@pytest.fixture()
def category(db, admin):
    category = Category(name="Beverages", slug="beverages", created_by_id=admin.id)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture()
def products(db, admin, category):
    """Two products: a tea (price 1000, stock 10) and a mug (price 500, stock 3)"""
    tea = Product(
        name="Ceylon Tea 400g", sku="TEA-400", barcode="4790000000011",
        category_id=category.id, price=Decimal("1000.00"), cost_price=Decimal("700.00"),
        selling_price=Decimal("1000.00"), stock=10, reorder_level=5, created_by_id=admin.id
    )
    mug = Product(
        name="Clay Mug", sku="MUG-01", category_id=category.id,
        price=Decimal("500.00"), cost_price=Decimal("300.00"),
        selling_price=Decimal("500.00"), stock=3, reorder_level=5, created_by_id=admin.id
    )
    db.add_all([tea, mug])
    db.commit()
    db.refresh(tea)
    db.refresh(mug)
    return tea, mug


@pytest.fixture()
def customer(db, admin):
    customer = Customer(name="Nimal Perera", phone="0771234567", email="nimal@example.com",
                        created_by_id=admin.id)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer
