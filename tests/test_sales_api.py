from datetime import date

from conftest import money
from app.shared.database.models import Activity, Customer, Product, Sale


def sale_payload(tea, mug, **extra):
    payload = {
        "items": [
            {"product_id": tea.id, "quantity": 2},
            {"product_id": mug.id, "quantity": 1},
        ],
        "payment_method": "cash",
        "discount": 200,
    }
    payload.update(extra)
    return payload


def create_sale(client, headers, payload):
    response = client.post("/api/v1/sales", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_sale_computes_totals_and_decrements_stock(client, db, cashier_headers, products):
    tea, mug = products
    sale = create_sale(client, cashier_headers, sale_payload(tea, mug, amount_paid=3000))

    assert money(sale["subtotal"]) == money("2500")
    assert money(sale["discount"]) == money("200")
    assert money(sale["total"]) == money("2300")
    assert money(sale["change"]) == money("700")
    assert money(sale["balance_due"]) == money("0")
    assert sale["payment_status"] == "paid"
    assert sale["status"] == "completed"
    assert sale["invoice_number"] == f"INV-{date.today():%Y%m%d}-0001"

    db.expire_all()
    assert db.get(Product, tea.id).stock == 8
    assert db.get(Product, mug.id).stock == 2
    assert db.query(Activity).filter(Activity.action == "sale_created").count() == 1


def test_amount_paid_defaults_to_total(client, cashier_headers, products):
    tea, mug = products
    sale = create_sale(client, cashier_headers, sale_payload(tea, mug))

    assert money(sale["amount_paid"]) == money("2300")
    assert money(sale["change"]) == money("0")


def test_partial_payment_has_negative_change(client, cashier_headers, products):
    tea, mug = products
    sale = create_sale(client, cashier_headers, sale_payload(tea, mug, amount_paid=2000))

    assert sale["payment_status"] == "partial"
    assert money(sale["change"]) == money("-300")
    assert money(sale["balance_due"]) == money("300")

    response = client.patch(
        f"/api/v1/sales/{sale['id']}/payment", json={"amount_paid": 2300}, headers=cashier_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["payment_status"] == "paid"


def test_invoice_numbers_increase(client, cashier_headers, products):
    tea, mug = products
    first = create_sale(client, cashier_headers, {"items": [{"product_id": tea.id, "quantity": 1}],
                                                  "payment_method": "cash"})
    second = create_sale(client, cashier_headers, {"items": [{"product_id": tea.id, "quantity": 1}],
                                                   "payment_method": "card"})

    assert first["invoice_number"].endswith("-0001")
    assert second["invoice_number"].endswith("-0002")

    response = client.get(f"/api/v1/sales/invoice/{second['invoice_number'].lower()}",
                          headers=cashier_headers)
    assert response.status_code == 200
    assert response.json()["data"]["id"] == second["id"]


def test_insufficient_stock_rolls_back_everything(client, db, cashier_headers, products):
    tea, mug = products
    response = client.post("/api/v1/sales", json={
        "items": [
            {"product_id": tea.id, "quantity": 2},
            {"product_id": mug.id, "quantity": 5},
        ],
        "payment_method": "cash",
    }, headers=cashier_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "Insufficient stock" in body["message"]

    db.expire_all()
    assert db.get(Product, tea.id).stock == 10
    assert db.get(Product, mug.id).stock == 3
    assert db.query(Sale).count() == 0

    sale = create_sale(client, cashier_headers, {"items": [{"product_id": mug.id, "quantity": 1}],
                                                 "payment_method": "cash"})
    assert sale["invoice_number"].endswith("-0001")


def test_empty_sale_is_rejected(client, cashier_headers, products):
    response = client.post("/api/v1/sales", json={"items": [], "payment_method": "cash"},
                           headers=cashier_headers)
    assert response.status_code == 422
    assert response.json()["errors"]


def test_unknown_product_is_rejected(client, cashier_headers, products):
    response = client.post("/api/v1/sales", json={"items": [{"product_id": 999, "quantity": 1}],
                                                  "payment_method": "cash"},
                           headers=cashier_headers)
    assert response.status_code == 400


def test_staff_cannot_sell(client, staff_headers, products):
    tea, mug = products
    response = client.post("/api/v1/sales", json=sale_payload(tea, mug), headers=staff_headers)
    assert response.status_code == 403


def test_sale_updates_customer_and_loyalty(client, db, cashier_headers, products, customer):
    tea, mug = products
    create_sale(client, cashier_headers, sale_payload(tea, mug, customer_id=customer.id))

    db.expire_all()
    stored = db.get(Customer, customer.id)
    assert stored.total_orders == 1
    assert money(stored.total_spent) == money("2300")
    assert stored.loyalty_points == 23
    assert stored.last_purchase is not None


def test_refund_restores_stock_and_customer(client, db, cashier_headers, admin_headers, products, customer):
    tea, mug = products
    sale = create_sale(client, cashier_headers, sale_payload(tea, mug, customer_id=customer.id))

    forbidden = client.post(f"/api/v1/sales/{sale['id']}/refund", json={"reason": "damaged"},
                            headers=cashier_headers)
    assert forbidden.status_code == 403

    response = client.post(f"/api/v1/sales/{sale['id']}/refund", json={"reason": "damaged"},
                           headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "refunded"
    assert data["payment_status"] == "refunded"
    assert data["refund_reason"] == "damaged"
    assert data["refunded_by"]["name"] == "Admin Tester"

    db.expire_all()
    assert db.get(Product, tea.id).stock == 10
    assert db.get(Product, mug.id).stock == 3
    stored = db.get(Customer, customer.id)
    assert stored.total_orders == 0
    assert money(stored.total_spent) == money("0")
    assert stored.loyalty_points == 0

    again = client.post(f"/api/v1/sales/{sale['id']}/refund", json={"reason": "again"},
                        headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Sale has already been refunded"


def test_refund_requires_reason(client, cashier_headers, admin_headers, products):
    tea, mug = products
    sale = create_sale(client, cashier_headers, sale_payload(tea, mug))
    response = client.post(f"/api/v1/sales/{sale['id']}/refund", json={"reason": "  "},
                           headers=admin_headers)
    assert response.status_code == 422


def test_product_field_is_ref_or_populated(client, cashier_headers, products):
    tea, mug = products
    sale = create_sale(client, cashier_headers, sale_payload(tea, mug))

    listed = client.get("/api/v1/sales", headers=cashier_headers).json()
    assert listed["pagination"]["total"] == 1
    ref = listed["data"][0]["items"][0]["product"]
    assert ref == {"kind": "ref", "id": tea.id}

    detail = client.get(f"/api/v1/sales/{sale['id']}", headers=cashier_headers).json()["data"]
    product = detail["items"][0]["product"]
    assert product["kind"] == "populated"
    assert product["sku"] == "TEA-400"


def test_quote_with_return_lines_settles_as_refund(client, cashier_headers, products):
    tea, mug = products
    sale = create_sale(client, cashier_headers, {"items": [{"product_id": tea.id, "quantity": 2}],
                                                 "payment_method": "cash"})
    tea_line = sale["items"][0]

    response = client.post("/api/v1/sales/quote", json={
        "items": [
            {"product_id": mug.id, "quantity": 1},
            {"product_id": tea.id, "quantity": -2, "source_sale_item_id": tea_line["id"]},
        ]
    }, headers=cashier_headers)
    assert response.status_code == 200
    quote = response.json()["data"]

    assert money(quote["purchase_subtotal"]) == money("500")
    assert money(quote["return_subtotal"]) == money("2000")
    assert money(quote["total"]) == money("-1500")
    assert quote["settlement"] == "refund"
    assert money(quote["amount_due"]) == money("1500")
    assert quote["lines"][1]["quantity"] == -2
    assert quote["lines"][1]["is_return"] is True


def test_quote_collects_with_change(client, cashier_headers, products):
    tea, mug = products
    response = client.post("/api/v1/sales/quote", json={
        "items": [{"product_id": tea.id, "quantity": 1}],
        "amount_paid": 1200,
    }, headers=cashier_headers)
    quote = response.json()["data"]

    assert quote["settlement"] == "collect"
    assert money(quote["change"]) == money("200")
    assert money(quote["balance_due"]) == money("0")


def test_return_lines_for_invoice(client, cashier_headers, products):
    tea, mug = products
    sale = create_sale(client, cashier_headers, sale_payload(tea, mug))

    response = client.post(f"/api/v1/sales/{sale['id']}/return-lines", headers=cashier_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert [line["quantity"] for line in data["lines"]] == [-2, -1]
    assert money(data["return_total"]) == money("2500")

    partial = client.post(f"/api/v1/sales/{sale['id']}/return-lines", json={
        "items": [{"sale_item_id": sale["items"][0]["id"], "quantity": 3}]
    }, headers=cashier_headers)
    assert partial.status_code == 400


def test_full_return_of_unevenly_discounted_line(client, cashier_headers, products):
    tea, _ = products
    sale = create_sale(client, cashier_headers, {
        "items": [{"product_id": tea.id, "quantity": 3, "discount": 1}],
        "payment_method": "cash",
    })
    sold_total = money(sale["items"][0]["total"])

    response = client.post(f"/api/v1/sales/{sale['id']}/return-lines", headers=cashier_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert money(data["lines"][0]["unit_price"]) == money("1000")
    assert money(data["lines"][0]["total"]) == -sold_total
    assert money(data["return_total"]) == sold_total


def test_stats_overview(client, cashier_headers, products):
    tea, mug = products
    create_sale(client, cashier_headers, sale_payload(tea, mug))
    create_sale(client, cashier_headers, {"items": [{"product_id": tea.id, "quantity": 1}],
                                          "payment_method": "card"})

    data = client.get("/api/v1/sales/stats/overview", headers=cashier_headers).json()["data"]
    assert data["today_orders"] == 2
    assert money(data["today_sales"]) == money("3300")
    assert data["payment_methods"]["card"]["count"] == 1
