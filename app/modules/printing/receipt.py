# app/modules/printing/receipt.py
"""
Receipt rendering for stored sales: fixed-width text for thermal printers
and a small standalone HTML page for browsers and the file fallback.
"""
from dataclasses import dataclass
from decimal import Decimal
from html import escape
from typing import List, Optional

from app.config.settings import settings
from app.shared.database.models import Sale, SaleItem
from app.shared.money import to_money


@dataclass
class Receipt:
    invoice_number: str
    text: str
    html: str


def format_amount(value) -> str:
    return f"{to_money(value):,.2f}"


def _row(left: str, right: str, width: int) -> str:
    space = width - len(right) - 1
    if len(left) > space:
        left = left[:max(space, 0)]
    return f"{left:<{space}} {right}"


def _item_name(item: SaleItem) -> str:
    return item.product.name if item.product is not None else f"Product #{item.product_id}"


def _summary_lines(sale: Sale) -> List[tuple]:
    lines = [("Subtotal", format_amount(sale.subtotal))]
    if to_money(sale.discount):
        lines.append(("Discount", f"-{format_amount(sale.discount)}"))
    if to_money(sale.tax):
        lines.append(("Tax", format_amount(sale.tax)))
    if to_money(sale.shipping):
        lines.append(("Shipping", format_amount(sale.shipping)))
    return lines


def _payment_lines(sale: Sale) -> List[tuple]:
    lines = [(f"Paid ({sale.payment_method.upper()})", format_amount(sale.amount_paid))]
    balance = sale.balance_due
    if balance > Decimal("0"):
        lines.append(("Balance due", format_amount(balance)))
    else:
        lines.append(("Change", format_amount(sale.change)))
    return lines


def render_receipt_text(sale: Sale, width: Optional[int] = None) -> str:
    width = width or settings.receipt_width
    rule = "-" * width
    out = [settings.store_name.center(width).rstrip()]
    if settings.store_address:
        out.append(settings.store_address.center(width).rstrip())
    if settings.store_phone:
        out.append(f"Tel: {settings.store_phone}".center(width).rstrip())
    out.append(rule)
    out.append(f"Invoice: {sale.invoice_number}")
    out.append(f"Date: {sale.created_at:%Y-%m-%d %H:%M}")
    if sale.cashier is not None:
        out.append(f"Cashier: {sale.cashier.full_name}")
    if sale.customer is not None:
        out.append(f"Customer: {sale.customer.name}")
    if sale.status == "refunded":
        out.append("*** REFUNDED ***".center(width).rstrip())
    out.append(rule)

    for item in sale.items:
        out.append(_item_name(item)[:width])
        out.append(_row(f"  {item.quantity} x {format_amount(item.unit_price)}",
                        format_amount(item.total), width))
        if to_money(item.discount):
            out.append(_row("  discount", f"-{format_amount(item.discount)}", width))
    out.append(rule)

    for label, amount in _summary_lines(sale):
        out.append(_row(label, amount, width))
    out.append(_row(f"TOTAL ({settings.currency})", format_amount(sale.total), width))
    for label, amount in _payment_lines(sale):
        out.append(_row(label, amount, width))
    out.append(rule)
    out.append("Thank you for shopping with us!".center(width).rstrip())
    return "\n".join(out) + "\n"


def render_receipt_html(sale: Sale) -> str:
    rows = "".join(
        f"<tr><td>{escape(_item_name(item))}</td><td class=\"num\">{item.quantity}</td>"
        f"<td class=\"num\">{format_amount(item.unit_price)}</td>"
        f"<td class=\"num\">{format_amount(item.total)}</td></tr>"
        for item in sale.items
    )
    totals = "".join(
        f"<tr><td colspan=\"3\">{escape(label)}</td><td class=\"num\">{escape(amount)}</td></tr>"
        for label, amount in _summary_lines(sale)
        + [(f"TOTAL ({settings.currency})", format_amount(sale.total))]
        + _payment_lines(sale)
    )
    header = [f"<h2>{escape(settings.store_name)}</h2>"]
    if settings.store_address:
        header.append(f"<div>{escape(settings.store_address)}</div>")
    if settings.store_phone:
        header.append(f"<div>Tel: {escape(settings.store_phone)}</div>")
    meta = [
        f"<div>Invoice: {escape(sale.invoice_number)}</div>",
        f"<div>Date: {sale.created_at:%Y-%m-%d %H:%M}</div>",
    ]
    if sale.customer is not None:
        meta.append(f"<div>Customer: {escape(sale.customer.name)}</div>")

    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>Receipt {escape(sale.invoice_number)}</title>"
        "<style>body{font-family:monospace;width:80mm;margin:0 auto}"
        "table{width:100%;border-collapse:collapse}.num{text-align:right}"
        "h2{text-align:center;margin:4px 0}</style></head><body>"
        + "".join(header) + "<hr>" + "".join(meta) + "<hr>"
        "<table><tr><th>Item</th><th>Qty</th><th>Price</th><th>Total</th></tr>"
        + rows + totals + "</table><hr><p style=\"text-align:center\">"
        "Thank you for shopping with us!</p></body></html>"
    )


def build_receipt(sale: Sale, width: Optional[int] = None) -> Receipt:
    return Receipt(
        invoice_number=sale.invoice_number,
        text=render_receipt_text(sale, width),
        html=render_receipt_html(sale)
    )
