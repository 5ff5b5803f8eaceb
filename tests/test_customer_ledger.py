from decimal import Decimal

import pytest

from app.modules.customers.ledger import (
    InsufficientLoyaltyPoints, add_loyalty_points, evaluate_tier, points_for, record_purchase,
    redeem_loyalty_points, remove_loyalty_points, reverse_purchase
)
from app.shared.database.models import Customer

THRESHOLDS = {"vip": 500000}


def new_customer(**kwargs) -> Customer:
    values = dict(name="Kamala", phone="0711111111", loyalty_points=0, total_spent=Decimal("0"),
                  total_orders=0, average_order_value=Decimal("0"), customer_type="regular")
    values.update(kwargs)
    return Customer(**values)


def test_first_purchase_updates_stats():
    customer = record_purchase(new_customer(), Decimal("2300"), THRESHOLDS)

    assert customer.total_orders == 1
    assert customer.total_spent == Decimal("2300.00")
    assert customer.average_order_value == Decimal("2300.00")
    assert customer.last_purchase is not None
    assert customer.customer_type == "regular"


def test_large_purchase_promotes_to_vip():
    customer = record_purchase(new_customer(), Decimal("600000"), THRESHOLDS)
    assert customer.customer_type == "vip"


def test_threshold_must_be_exceeded():
    assert evaluate_tier("regular", Decimal("500000"), THRESHOLDS) == "regular"
    assert evaluate_tier("regular", Decimal("500000.01"), THRESHOLDS) == "vip"


def test_tier_is_never_lowered():
    assert evaluate_tier("vip", Decimal("10"), THRESHOLDS) == "vip"
    customer = reverse_purchase(new_customer(customer_type="vip", total_spent=Decimal("600000"),
                                             total_orders=1), Decimal("600000"))
    assert customer.customer_type == "vip"
    assert customer.total_spent == Decimal("0.00")
    assert customer.total_orders == 0
    assert customer.average_order_value == Decimal("0.00")


def test_points_for_floors():
    assert points_for(Decimal("2399.99"), 0.01) == 23
    assert points_for(Decimal("0"), 0.01) == 0


def test_redeem_more_than_available_leaves_balance():
    customer = new_customer(loyalty_points=50)
    with pytest.raises(InsufficientLoyaltyPoints):
        redeem_loyalty_points(customer, 51)
    assert customer.loyalty_points == 50

    redeem_loyalty_points(customer, 50)
    assert customer.loyalty_points == 0


def test_add_and_remove_points():
    customer = add_loyalty_points(new_customer(), 30)
    assert customer.loyalty_points == 30
    with pytest.raises(ValueError):
        add_loyalty_points(customer, -1)

    remove_loyalty_points(customer, 100)
    assert customer.loyalty_points == 0
