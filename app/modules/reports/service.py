# app/modules/reports/service.py
import logging
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.shared.database.models import Product, Sale
from app.shared.money import ZERO, to_money
from .repository import ReportsRepository

logger = logging.getLogger(__name__)

PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
    "year": "%Y",
}

TOP_CUSTOMERS_LIMIT = 10


def period_key(moment: datetime, group_by: str) -> str:
    return moment.strftime(PERIOD_FORMATS.get(group_by, PERIOD_FORMATS["day"]))


def _sum(values) -> Decimal:
    return to_money(sum((to_money(v) for v in values), ZERO))


def _average(total: Decimal, count: int) -> Decimal:
    return to_money(total / count) if count else ZERO


def _customer_name(sale: Sale) -> str:
    return sale.customer.name if sale.customer else "Walk-in Customer"


class ReportsService:
    """
    Read-only business reports. Aggregation happens in Python over the
    filtered rows so results match on SQLite and PostgreSQL alike.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = ReportsRepository(db)

    # ==================== DASHBOARD ====================

    async def get_dashboard(self) -> dict:
        now = datetime.now()
        today_start = datetime.combine(now.date(), time.min)
        month_start = today_start.replace(day=1)

        products = self.repository.active_products()
        low_stock = [p for p in products if p.stock <= p.reorder_level]

        return {
            "success": True,
            "data": {
                "today": self.repository.sales_totals_since(today_start),
                "this_month": self.repository.sales_totals_since(month_start),
                "total_products": len(products),
                "total_customers": self.repository.count_active_customers(),
                "low_stock": {
                    "count": len(low_stock),
                    "items": [
                        {"id": p.id, "name": p.name, "sku": p.sku, "stock": p.stock,
                         "reorder_level": p.reorder_level}
                        for p in low_stock[:10]
                    ]
                },
                "recent_sales": [
                    {
                        "id": sale.id,
                        "invoice_number": sale.invoice_number,
                        "customer": _customer_name(sale),
                        "total": sale.total,
                        "payment_method": sale.payment_method,
                        "created_at": sale.created_at
                    }
                    for sale in self.repository.recent_sales(5)
                ]
            }
        }

    # ==================== SALES ====================

    async def get_sales_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        group_by: str = "day"
    ) -> dict:
        sales = self.repository.sales(start_date, end_date, with_items=True)

        periods: Dict[str, dict] = OrderedDict()
        for sale in sorted(sales, key=lambda s: (s.created_at, s.id)):
            key = period_key(sale.created_at, group_by)
            bucket = periods.setdefault(key, {
                "period": key,
                "revenue": ZERO,
                "orders": 0,
                "gross_profit": ZERO,
                "net_profit": ZERO,
                "items_sold": 0
            })
            bucket["revenue"] = to_money(bucket["revenue"] + sale.total)
            bucket["orders"] += 1
            bucket["gross_profit"] = to_money(bucket["gross_profit"] + sale.gross_profit)
            bucket["net_profit"] = to_money(bucket["net_profit"] + sale.net_profit)
            bucket["items_sold"] += sum(item.quantity for item in sale.items)

        revenue = _sum(s.total for s in sales)
        summary = {
            "total_revenue": revenue,
            "total_orders": len(sales),
            "gross_profit": _sum(s.gross_profit for s in sales),
            "net_profit": _sum(s.net_profit for s in sales),
            "total_discount": _sum(s.discount for s in sales),
            "total_tax": _sum(s.tax for s in sales),
            "average_order_value": _average(revenue, len(sales)),
            "items_sold": sum(b["items_sold"] for b in periods.values())
        }
        return {
            "success": True,
            "data": {
                "period": {"start_date": start_date, "end_date": end_date, "group_by": group_by},
                "summary": summary,
                "details": list(periods.values())
            }
        }

    # ==================== INVENTORY ====================

    async def get_inventory_report(self) -> dict:
        products = self.repository.active_products()

        categories: Dict[str, dict] = OrderedDict()
        for product in products:
            name = product.category.name if product.category else "Uncategorized"
            bucket = categories.setdefault(name, {
                "category": name,
                "products": 0,
                "units": 0,
                "cost_value": ZERO,
                "retail_value": ZERO
            })
            bucket["products"] += 1
            bucket["units"] += product.stock
            bucket["cost_value"] = to_money(bucket["cost_value"] + product.cost_price * product.stock)
            bucket["retail_value"] = to_money(bucket["retail_value"] + product.selling_price * product.stock)

        low_stock = [p for p in products if 0 < p.stock <= p.reorder_level]
        out_of_stock = [p for p in products if p.stock <= 0]

        return {
            "success": True,
            "data": {
                "summary": {
                    "total_products": len(products),
                    "total_units": sum(p.stock for p in products),
                    "total_cost_value": _sum(p.cost_price * p.stock for p in products),
                    "total_retail_value": _sum(p.selling_price * p.stock for p in products),
                    "low_stock_count": len(low_stock),
                    "out_of_stock_count": len(out_of_stock)
                },
                "categories": list(categories.values()),
                "low_stock": [self._stock_row(p) for p in low_stock],
                "out_of_stock": [self._stock_row(p) for p in out_of_stock],
                "products": [self._stock_row(p) for p in products]
            }
        }

    @staticmethod
    def _stock_row(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "sku": product.sku,
            "category": product.category.name if product.category else None,
            "stock": product.stock,
            "reorder_level": product.reorder_level,
            "cost_price": product.cost_price,
            "selling_price": product.selling_price,
            "stock_value": to_money(product.cost_price * product.stock),
            "stock_status": product.stock_status
        }

    # ==================== CUSTOMERS ====================

    async def get_customers_report(self) -> dict:
        customers = self.repository.active_customers()

        distribution: Dict[str, dict] = OrderedDict(
            (tier, {"customer_type": tier, "customers": 0, "total_spent": ZERO})
            for tier in ("regular", "wholesale", "vip")
        )
        for customer in customers:
            bucket = distribution.setdefault(customer.customer_type, {
                "customer_type": customer.customer_type, "customers": 0, "total_spent": ZERO
            })
            bucket["customers"] += 1
            bucket["total_spent"] = to_money(bucket["total_spent"] + customer.total_spent)

        total_spent = _sum(c.total_spent for c in customers)
        return {
            "success": True,
            "data": {
                "summary": {
                    "total_customers": len(customers),
                    "active_buyers": sum(1 for c in customers if c.total_orders > 0),
                    "total_spent": total_spent,
                    "total_loyalty_points": sum(c.loyalty_points for c in customers),
                    "average_spent": _average(total_spent, len(customers))
                },
                "distribution": list(distribution.values()),
                "top_customers": [
                    {
                        "id": c.id,
                        "name": c.name,
                        "phone": c.phone,
                        "customer_type": c.customer_type,
                        "total_orders": c.total_orders,
                        "total_spent": c.total_spent,
                        "loyalty_points": c.loyalty_points,
                        "last_purchase": c.last_purchase
                    }
                    for c in customers[:TOP_CUSTOMERS_LIMIT]
                ]
            }
        }

    # ==================== PROFIT & LOSS ====================

    async def get_profit_loss(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> dict:
        if not start_date and not end_date:
            end_date = date.today()
            start_date = end_date - timedelta(days=29)

        sales = self.repository.sales(start_date, end_date)
        expenses = self.repository.expenses(start_date, end_date)

        breakdown: Dict[str, Decimal] = OrderedDict()
        for expense in expenses:
            breakdown[expense.category] = to_money(breakdown.get(expense.category, ZERO) + expense.amount)

        revenue = _sum(s.total for s in sales)
        gross_profit = _sum(s.gross_profit for s in sales)
        total_expenses = _sum(e.amount for e in expenses)
        net_profit = to_money(gross_profit - total_expenses)

        return {
            "success": True,
            "data": {
                "period": {"start_date": start_date, "end_date": end_date},
                "revenue": revenue,
                "cost_of_goods": to_money(revenue - _sum(s.net_profit for s in sales)),
                "gross_profit": gross_profit,
                "total_expenses": total_expenses,
                "net_profit": net_profit,
                "profit_margin": to_money(net_profit / revenue * 100) if revenue else ZERO,
                "expense_breakdown": [
                    {"category": category, "amount": amount}
                    for category, amount in sorted(breakdown.items(), key=lambda kv: kv[1], reverse=True)
                ]
            }
        }

    # ==================== INVOICES ====================

    async def get_invoices_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sale_status: Optional[str] = None,
        payment_method: Optional[str] = None,
        customer_id: Optional[int] = None
    ) -> dict:
        sales = self.repository.sales(
            start_date, end_date,
            status=sale_status,
            payment_method=payment_method,
            customer_id=customer_id,
            with_items=True
        )
        completed = [s for s in sales if s.status == "completed"]
        refunded = [s for s in sales if s.status == "refunded"]
        revenue = _sum(s.total for s in completed)

        return {
            "success": True,
            "count": len(sales),
            "data": {
                "summary": {
                    "total_invoices": len(sales),
                    "total_revenue": revenue,
                    "total_refunds": len(refunded),
                    "refunded_amount": _sum(s.total for s in refunded),
                    "outstanding_balance": _sum(s.balance_due for s in completed),
                    "average_invoice_value": _average(revenue, len(completed))
                },
                "invoices": [
                    {
                        "id": s.id,
                        "invoice_number": s.invoice_number,
                        "date": s.created_at,
                        "customer": _customer_name(s),
                        "items": sum(item.quantity for item in s.items),
                        "subtotal": s.subtotal,
                        "discount": s.discount,
                        "tax": s.tax,
                        "total": s.total,
                        "amount_paid": s.amount_paid,
                        "payment_method": s.payment_method,
                        "payment_status": s.payment_status,
                        "status": s.status
                    }
                    for s in sales
                ]
            }
        }

    # ==================== CSV ====================

    @staticmethod
    def csv_table(report: str, data: dict) -> tuple:
        """Headers and rows for the flat CSV rendition of a report payload"""
        if report == "sales":
            headers = ["Period", "Revenue", "Orders", "Gross Profit", "Net Profit", "Items Sold"]
            rows = [
                [d["period"], d["revenue"], d["orders"], d["gross_profit"], d["net_profit"], d["items_sold"]]
                for d in data["details"]
            ]
        elif report == "inventory":
            headers = ["SKU", "Name", "Category", "Stock", "Reorder Level", "Cost Price",
                       "Selling Price", "Stock Value", "Status"]
            rows = [
                [p["sku"], p["name"], p["category"] or "", p["stock"], p["reorder_level"],
                 p["cost_price"], p["selling_price"], p["stock_value"], p["stock_status"]]
                for p in data["products"]
            ]
        elif report == "customers":
            headers = ["ID", "Name", "Phone", "Type", "Orders", "Total Spent", "Loyalty Points"]
            rows = [
                [c["id"], c["name"], c["phone"], c["customer_type"], c["total_orders"],
                 c["total_spent"], c["loyalty_points"]]
                for c in data["top_customers"]
            ]
        elif report == "profit-loss":
            headers = ["Line", "Amount"]
            rows = [
                ["Revenue", data["revenue"]],
                ["Cost of Goods", data["cost_of_goods"]],
                ["Gross Profit", data["gross_profit"]],
                ["Total Expenses", data["total_expenses"]],
                ["Net Profit", data["net_profit"]],
                ["Profit Margin %", data["profit_margin"]],
            ] + [[f"Expense: {e['category']}", e["amount"]] for e in data["expense_breakdown"]]
        elif report == "invoices":
            headers = ["Invoice", "Date", "Customer", "Items", "Total", "Amount Paid",
                       "Payment Method", "Payment Status", "Status"]
            rows = [
                [i["invoice_number"], i["date"].isoformat(sep=" ", timespec="seconds"), i["customer"],
                 i["items"], i["total"], i["amount_paid"], i["payment_method"],
                 i["payment_status"], i["status"]]
                for i in data["invoices"]
            ]
        else:
            raise ValueError(f"Unknown report: {report}")
        return headers, rows
