import pytest

from conftest import money
from app.modules.products.repository import InsufficientStock, ProductsRepository
from app.modules.products.service import slugify


def test_slugify():
    assert slugify("Home & Kitchen") == "home-kitchen"
    assert slugify("  Fresh Fruit 2025! ") == "fresh-fruit-2025"


def test_create_product_normalizes_fields(client, admin_headers, category):
    response = client.post("/api/v1/products", json={
        "name": "Coconut Oil 1L",
        "sku": " oil-1l ",
        "barcode": "",
        "category_id": category.id,
        "price": 950,
        "cost_price": 700,
        "stock": 12,
    }, headers=admin_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["sku"] == "OIL-1L"
    assert data["barcode"] is None
    assert money(data["selling_price"]) == money("950")
    assert data["category_name"] == "Beverages"
    assert data["stock_status"] == "in_stock"


def test_duplicate_sku_conflicts(client, admin_headers, products):
    response = client.post("/api/v1/products", json={
        "name": "Another Tea", "sku": "tea-400", "price": 10, "cost_price": 5,
    }, headers=admin_headers)
    assert response.status_code == 409


def test_cashier_cannot_create_products(client, cashier_headers):
    response = client.post("/api/v1/products", json={
        "name": "Sugar 1kg", "sku": "SUG-1", "price": 300, "cost_price": 250,
    }, headers=cashier_headers)
    assert response.status_code == 403


def test_update_stock_add_and_subtract(client, admin_headers, products):
    tea, mug = products
    added = client.post(f"/api/v1/products/{tea.id}/update-stock",
                        json={"quantity": 5, "operation": "add"}, headers=admin_headers)
    assert added.json()["data"]["stock"] == 15

    too_many = client.post(f"/api/v1/products/{mug.id}/update-stock",
                           json={"quantity": 4, "operation": "subtract"}, headers=admin_headers)
    assert too_many.status_code == 400
    assert too_many.json()["message"] == "Insufficient stock for Clay Mug"

    emptied = client.post(f"/api/v1/products/{mug.id}/update-stock",
                          json={"quantity": 3, "operation": "subtract"}, headers=admin_headers)
    assert emptied.json()["data"]["stock"] == 0
    assert emptied.json()["data"]["stock_status"] == "out_of_stock"


def test_bulk_update_reports_each_line(client, admin_headers, products):
    tea, mug = products
    response = client.post("/api/v1/inventory/bulk-update", json={"updates": [
        {"product_id": tea.id, "quantity": 2, "type": "subtract"},
        {"product_id": mug.id, "quantity": 9, "type": "subtract"},
        {"product_id": 999, "quantity": 1, "type": "add"},
        {"product_id": mug.id, "quantity": 20, "type": "set"},
    ]}, headers=admin_headers)

    results = response.json()["data"]
    assert [r["success"] for r in results] == [True, False, False, True]
    assert results[0]["new_stock"] == 8
    assert results[3]["new_stock"] == 20


def test_alerts_list_low_stock(client, cashier_headers, products):
    tea, mug = products
    data = client.get("/api/v1/inventory/alerts", headers=cashier_headers).json()["data"]
    assert [p["sku"] for p in data["low_stock"]] == ["MUG-01"]
    assert data["out_of_stock"] == []


def test_category_slug_and_duplicates(client, admin_headers):
    created = client.post("/api/v1/categories", json={"name": "Home & Kitchen"}, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["data"]["slug"] == "home-kitchen"

    duplicate = client.post("/api/v1/categories", json={"name": "Home & Kitchen"}, headers=admin_headers)
    assert duplicate.status_code == 409


def test_soft_delete_hides_product(client, admin_headers, products):
    tea, mug = products
    assert client.delete(f"/api/v1/products/{mug.id}", headers=admin_headers).status_code == 200

    listed = client.get("/api/v1/products", headers=admin_headers).json()
    assert [p["sku"] for p in listed["data"]] == ["TEA-400"]


def test_take_stock_raises_when_short(db, products):
    tea, mug = products
    repository = ProductsRepository(db)
    with pytest.raises(InsufficientStock):
        repository.take_stock(mug.id, 4)
    repository.take_stock(mug.id, 3)
    assert repository.current_stock(mug.id) == 0
