import csv
import io
from datetime import datetime
from decimal import Decimal

from conftest import money
from app.shared.database.models import Expense


def make_sale(client, headers, tea, mug):
    response = client.post("/api/v1/sales", json={
        "items": [{"product_id": tea.id, "quantity": 2}, {"product_id": mug.id, "quantity": 1}],
        "payment_method": "cash",
        "discount": 200,
    }, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


def test_dashboard(client, cashier_headers, products, customer):
    tea, mug = products
    make_sale(client, cashier_headers, tea, mug)

    data = client.get("/api/v1/reports/dashboard", headers=cashier_headers).json()["data"]
    assert data["today"]["total_orders"] == 1
    assert money(data["today"]["total_sales"]) == money("2300")
    assert data["total_customers"] == 1
    assert data["low_stock"]["count"] == 1
    assert data["recent_sales"][0]["customer"] == "Walk-in Customer"


def test_reports_need_management_role(client, cashier_headers):
    assert client.get("/api/v1/reports/sales", headers=cashier_headers).status_code == 403


def test_sales_report_groups_by_day(client, cashier_headers, admin_headers, products):
    tea, mug = products
    make_sale(client, cashier_headers, tea, mug)
    make_sale(client, cashier_headers, tea, mug)

    data = client.get("/api/v1/reports/sales", params={"group_by": "day"},
                      headers=admin_headers).json()["data"]
    assert data["summary"]["total_orders"] == 2
    assert money(data["summary"]["total_revenue"]) == money("4600")
    assert money(data["summary"]["average_order_value"]) == money("2300")
    assert len(data["details"]) == 1
    assert data["details"][0]["period"] == datetime.now().strftime("%Y-%m-%d")
    assert data["details"][0]["items_sold"] == 6


def test_sales_report_csv(client, cashier_headers, admin_headers, products):
    tea, mug = products
    make_sale(client, cashier_headers, tea, mug)

    response = client.get("/api/v1/reports/sales", params={"format": "csv", "group_by": "month"},
                          headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Period", "Revenue", "Orders", "Gross Profit", "Net Profit", "Items Sold"]
    assert rows[1][0] == datetime.now().strftime("%Y-%m")
    assert Decimal(rows[1][1]) == Decimal("2300.00")


def test_profit_loss_subtracts_expenses(client, db, admin, cashier_headers, admin_headers, products):
    tea, mug = products
    make_sale(client, cashier_headers, tea, mug)
    db.add_all([
        Expense(expense_number="EXP-TEST-0001", title="Electricity", category="utilities",
                amount=Decimal("300.00"), created_by_id=admin.id),
        Expense(expense_number="EXP-TEST-0002", title="Voided", category="rent",
                amount=Decimal("999.00"), status="cancelled", created_by_id=admin.id),
    ])
    db.commit()

    data = client.get("/api/v1/reports/profit-loss", headers=admin_headers).json()["data"]
    assert money(data["revenue"]) == money("2300")
    assert money(data["gross_profit"]) == money("800")
    assert money(data["total_expenses"]) == money("300")
    assert money(data["net_profit"]) == money("500")
    assert data["expense_breakdown"] == [{"category": "utilities", "amount": 300.0}]


def test_inventory_report(client, admin_headers, products):
    data = client.get("/api/v1/reports/inventory", headers=admin_headers).json()["data"]
    assert data["summary"]["total_products"] == 2
    assert data["summary"]["total_units"] == 13
    assert money(data["summary"]["total_cost_value"]) == money("7900")
    assert [p["sku"] for p in data["low_stock"]] == ["MUG-01"]
    assert data["categories"][0]["category"] == "Beverages"


def test_invoices_report_counts_refunds(client, cashier_headers, admin_headers, products):
    tea, mug = products
    first = make_sale(client, cashier_headers, tea, mug)
    make_sale(client, cashier_headers, tea, mug)
    client.post(f"/api/v1/sales/{first['id']}/refund", json={"reason": "faulty"}, headers=admin_headers)

    data = client.get("/api/v1/reports/invoices", headers=admin_headers).json()["data"]
    assert data["summary"]["total_invoices"] == 2
    assert data["summary"]["total_refunds"] == 1
    assert money(data["summary"]["total_revenue"]) == money("2300")

    refunded_only = client.get("/api/v1/reports/invoices", params={"status": "refunded"},
                               headers=admin_headers).json()["data"]
    assert [i["invoice_number"] for i in refunded_only["invoices"]] == [first["invoice_number"]]


def test_customers_report(client, admin_headers, customer):
    data = client.get("/api/v1/reports/customers", headers=admin_headers).json()["data"]
    assert data["summary"]["total_customers"] == 1
    regular = next(d for d in data["distribution"] if d["customer_type"] == "regular")
    assert regular["customers"] == 1
    assert data["top_customers"][0]["name"] == "Nimal Perera"
