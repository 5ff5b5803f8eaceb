from datetime import date

from conftest import money
from app.shared.database.models import Activity, User


# ==================== EXPENSES ====================

def test_expense_numbers_and_summary(client, admin_headers):
    first = client.post("/api/v1/expenses", json={
        "title": "Shop rent", "category": "rent", "amount": 45000,
    }, headers=admin_headers)
    second = client.post("/api/v1/expenses", json={
        "title": "Water bill", "category": "utilities", "amount": 1200.5, "status": "pending",
    }, headers=admin_headers)

    assert first.status_code == 201
    assert first.json()["data"]["expense_number"] == f"EXP-{date.today():%Y%m%d}-0001"
    assert second.json()["data"]["expense_number"].endswith("-0002")

    listed = client.get("/api/v1/expenses", headers=admin_headers).json()
    assert listed["count"] == 2
    assert money(listed["summary"]["total_amount"]) == money("46200.50")

    expense_id = second.json()["data"]["id"]
    approved = client.post(f"/api/v1/expenses/{expense_id}/approve", headers=admin_headers)
    assert approved.json()["data"]["status"] == "paid"

    again = client.post(f"/api/v1/expenses/{expense_id}/approve", headers=admin_headers)
    assert again.status_code == 400

    client.delete(f"/api/v1/expenses/{expense_id}", headers=admin_headers)
    listed = client.get("/api/v1/expenses", headers=admin_headers).json()
    assert money(listed["summary"]["total_amount"]) == money("45000")


def test_expense_links_creator_and_approver(client, db, admin, admin_headers):
    admin_id = admin.id
    created = client.post("/api/v1/expenses", json={
        "title": "Till rolls", "category": "supplies", "amount": 850, "status": "pending",
    }, headers=admin_headers).json()["data"]
    client.post(f"/api/v1/expenses/{created['id']}/approve", headers=admin_headers)

    db.expire_all()
    user = db.query(User).filter(User.id == admin_id).first()
    assert [e.expense_number for e in user.expenses] == [created["expense_number"]]
    assert user.expenses[0].approved_by_id == admin_id


def test_recurring_expense_needs_period(client, admin_headers):
    response = client.post("/api/v1/expenses", json={
        "title": "Internet", "category": "communication", "amount": 3000, "is_recurring": True,
    }, headers=admin_headers)
    assert response.status_code == 422


def test_cashier_cannot_see_expenses(client, cashier_headers):
    assert client.get("/api/v1/expenses", headers=cashier_headers).status_code == 403


# ==================== SUPPLIERS ====================

def test_supplier_purchase_and_credit_limit(client, admin_headers):
    created = client.post("/api/v1/suppliers", json={
        "name": "Lanka Traders", "phone": "0112345678", "email": "sales@lanka.example.com",
        "credit_limit": 10000,
    }, headers=admin_headers)
    assert created.status_code == 201
    supplier_id = created.json()["data"]["id"]

    unpaid = client.post(f"/api/v1/suppliers/{supplier_id}/purchases",
                         json={"amount": 8000, "paid": False}, headers=admin_headers)
    data = unpaid.json()["data"]
    assert money(data["outstanding_balance"]) == money("8000")
    assert data["total_orders"] == 1

    over_limit = client.post(f"/api/v1/suppliers/{supplier_id}/purchases",
                             json={"amount": 2500, "paid": False}, headers=admin_headers)
    assert over_limit.status_code == 400

    paid = client.post(f"/api/v1/suppliers/{supplier_id}/purchases",
                       json={"amount": 2500}, headers=admin_headers)
    assert money(paid.json()["data"]["total_purchases"]) == money("10500")
    assert money(paid.json()["data"]["average_order_value"]) == money("5250")


def test_duplicate_supplier_email(client, admin_headers):
    payload = {"name": "Lanka Traders", "phone": "0112345678", "email": "sales@lanka.example.com"}
    client.post("/api/v1/suppliers", json=payload, headers=admin_headers)
    assert client.post("/api/v1/suppliers", json=payload, headers=admin_headers).status_code == 409


# ==================== USERS & ACTIVITY ====================

def test_admin_creates_cashier_who_can_log_in(client, db, admin_headers):
    response = client.post("/api/v1/users", json={
        "username": "Dilani", "email": "dilani@store.example.com", "password": "till1234",
        "first_name": "Dilani", "last_name": "Jayasuriya", "role": "cashier",
        "permissions": ["sales:create"],
    }, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["data"]["role"] == "cashier"

    login = client.post("/api/v1/auth/login", json={"username": "dilani", "password": "till1234"})
    assert login.status_code == 200
    assert db.query(Activity).filter(Activity.action == "user_created").count() == 1


def test_unknown_permission_is_rejected(client, admin_headers):
    response = client.post("/api/v1/users", json={
        "username": "someone", "email": "someone@store.example.com", "password": "secret123",
        "first_name": "Some", "last_name": "One", "permissions": ["launch:rockets"],
    }, headers=admin_headers)
    assert response.status_code == 422


def test_admin_cannot_remove_themselves(client, admin, admin_headers):
    deactivate = client.put(f"/api/v1/users/{admin.id}/status", json={"is_active": False},
                            headers=admin_headers)
    assert deactivate.status_code == 400
    assert client.delete(f"/api/v1/users/{admin.id}", headers=admin_headers).status_code == 400


def test_user_with_sales_cannot_be_deleted(client, db, admin_headers, cashier, cashier_headers, products):
    tea, mug = products
    client.post("/api/v1/sales", json={"items": [{"product_id": tea.id, "quantity": 1}],
                                       "payment_method": "cash"}, headers=cashier_headers)

    response = client.delete(f"/api/v1/users/{cashier.id}", headers=admin_headers)
    assert response.status_code == 400

    deactivated = client.put(f"/api/v1/users/{cashier.id}/status", json={"is_active": False},
                             headers=admin_headers)
    assert deactivated.status_code == 200
    assert client.get("/api/v1/auth/me", headers=cashier_headers).status_code == 401


def test_user_without_history_is_deleted(client, db, admin_headers, staff):
    user_id = staff.id
    assert client.delete(f"/api/v1/users/{user_id}", headers=admin_headers).status_code == 200
    db.expire_all()
    assert db.query(User).filter(User.id == user_id).first() is None


def test_activity_log(client, admin_headers, cashier_headers, products):
    tea, mug = products
    client.post("/api/v1/sales", json={"items": [{"product_id": tea.id, "quantity": 1}],
                                       "payment_method": "cash"}, headers=cashier_headers)

    activities = client.get("/api/v1/activities", headers=admin_headers).json()
    assert activities["data"][0]["action"] == "sale_created"
    assert activities["data"][0]["username"] == "cashier"
