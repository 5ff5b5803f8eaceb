from decimal import Decimal

from conftest import money
from app.modules.customers.repository import CustomersRepository
from app.shared.database.models import Customer


def test_create_and_fetch_customer(client, cashier_headers):
    response = client.post("/api/v1/customers", json={
        "name": "Sunil Fernando",
        "phone": "0779876543",
        "email": "sunil@example.com",
        "city": "Kandy",
    }, headers=cashier_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["customer_type"] == "regular"
    assert data["loyalty_points"] == 0
    assert money(data["total_spent"]) == money("0")

    fetched = client.get(f"/api/v1/customers/{data['id']}", headers=cashier_headers)
    assert fetched.json()["data"]["phone"] == "0779876543"


def test_duplicate_phone_conflicts(client, cashier_headers, customer):
    response = client.post("/api/v1/customers", json={"name": "Someone", "phone": customer.phone},
                           headers=cashier_headers)
    assert response.status_code == 409


def test_search_customers(client, cashier_headers, customer):
    response = client.get("/api/v1/customers", params={"search": "nimal"}, headers=cashier_headers)
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == customer.id


def test_redeem_more_points_than_available(client, db, cashier_headers, admin_headers, customer):
    added = client.post(f"/api/v1/customers/{customer.id}/loyalty/add", json={"points": 40},
                        headers=admin_headers)
    assert added.json()["data"]["loyalty_points"] == 40

    response = client.post(f"/api/v1/customers/{customer.id}/loyalty/redeem", json={"points": 41},
                           headers=cashier_headers)
    assert response.status_code == 400

    db.expire_all()
    assert db.get(Customer, customer.id).loyalty_points == 40

    redeemed = client.post(f"/api/v1/customers/{customer.id}/loyalty/redeem", json={"points": 15},
                           headers=cashier_headers)
    assert redeemed.json()["data"]["loyalty_points"] == 25


def test_loyalty_and_sales_lock_the_customer_row(client, cashier_headers, admin_headers,
                                                customer, products, monkeypatch):
    customer_id = customer.id
    locked = []
    original = CustomersRepository.get_for_update

    def spy(self, pk):
        locked.append(pk)
        return original(self, pk)

    monkeypatch.setattr(CustomersRepository, "get_for_update", spy)
    tea, _ = products

    client.post(f"/api/v1/customers/{customer_id}/loyalty/add", json={"points": 10}, headers=admin_headers)
    client.post(f"/api/v1/customers/{customer_id}/loyalty/redeem", json={"points": 5}, headers=cashier_headers)
    sale = client.post("/api/v1/sales", json={"items": [{"product_id": tea.id, "quantity": 1}],
                                             "customer_id": customer_id, "payment_method": "cash"},
                       headers=cashier_headers)
    assert sale.status_code == 201

    assert locked == [customer_id, customer_id, customer_id]


def test_cashier_cannot_add_points(client, cashier_headers, customer):
    response = client.post(f"/api/v1/customers/{customer.id}/loyalty/add", json={"points": 10},
                           headers=cashier_headers)
    assert response.status_code == 403


def test_delete_is_soft(client, db, admin_headers, customer):
    response = client.delete(f"/api/v1/customers/{customer.id}", headers=admin_headers)
    assert response.status_code == 200

    db.expire_all()
    stored = db.get(Customer, customer.id)
    assert stored is not None
    assert stored.is_active is False
