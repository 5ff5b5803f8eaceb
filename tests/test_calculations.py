from decimal import Decimal

import pytest

from app.modules.sales.calculations import (
    Cart, LineAmounts, compute_balance_due, compute_change, compute_sale_totals,
    header_discount_amount, line_total, payment_status_for, settlement_direction,
    tax_from_rate
)
from app.shared.money import to_money


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(1) == Decimal("1.00")
    assert to_money(None) == Decimal("0.00")


def test_line_total():
    assert line_total(2, "1000", discount="50", tax="25") == Decimal("1975.00")


def test_tax_from_rate():
    assert tax_from_rate(3, "99.99", "8") == Decimal("24.00")


def test_sale_totals_with_header_discount():
    lines = [
        LineAmounts(2, Decimal("1000"), cost_price=Decimal("700")),
        LineAmounts(1, Decimal("500"), cost_price=Decimal("300")),
    ]
    totals = compute_sale_totals(lines, discount=200)

    assert totals.subtotal == Decimal("2500.00")
    assert totals.discount == Decimal("200.00")
    assert totals.total == Decimal("2300.00")
    assert totals.gross_profit == Decimal("800.00")
    assert totals.net_profit == Decimal("600.00")


def test_total_equals_subtotal_without_adjustments():
    totals = compute_sale_totals([LineAmounts(3, Decimal("19.99"))])
    assert totals.total == totals.subtotal == Decimal("59.97")


def test_percentage_header_discount():
    assert header_discount_amount(Decimal("2500"), 10, "percentage") == Decimal("250.00")
    assert header_discount_amount(Decimal("0"), 10, "percentage") == Decimal("0.00")


def test_change_is_signed_and_balance_is_floored():
    assert compute_change(3000, 2300) == Decimal("700.00")
    assert compute_change(2000, 2300) == Decimal("-300.00")
    assert compute_balance_due(2000, 2300) == Decimal("300.00")
    assert compute_balance_due(3000, 2300) == Decimal("0.00")


@pytest.mark.parametrize("paid,expected", [(2300, "paid"), (3000, "paid"), (100, "partial"), (0, "pending")])
def test_payment_status(paid, expected):
    assert payment_status_for(paid, 2300) == expected


def test_settlement_direction():
    assert settlement_direction(10) == "collect"
    assert settlement_direction(-10) == "refund"
    assert settlement_direction(0) == "none"


def test_cart_return_lines_lower_the_total():
    cart = Cart()
    cart.add_item(1, "Tea", 1, "500")
    cart.add_return(2, "Kettle", sold_quantity=1, unit_price="800")

    totals = cart.totals()
    assert cart.lines[1].quantity == -1
    assert cart.purchase_subtotal == Decimal("500.00")
    assert cart.return_subtotal == Decimal("800.00")
    assert totals.total == Decimal("-300.00")
    assert settlement_direction(totals.total) == "refund"


def test_cart_rejects_invalid_quantities():
    cart = Cart()
    with pytest.raises(ValueError):
        cart.add_item(1, "Tea", 0, "500")
    with pytest.raises(ValueError):
        cart.add_return(1, "Tea", sold_quantity=2, unit_price="500", return_quantity=3)
    assert cart.lines == []


def test_full_return_gives_back_the_line_total():
    sold = line_total(3, "1000", discount="1")
    assert sold == Decimal("2999.00")

    cart = Cart()
    full = cart.add_return(1, "Tea", sold_quantity=3, unit_price="1000", sold_discount="1")
    partial = cart.add_return(1, "Tea", sold_quantity=3, unit_price="1000",
                              return_quantity=1, sold_discount="1")

    assert full.total == -sold
    assert full.unit_price == Decimal("1000.00")
    assert partial.total == Decimal("-999.67")
