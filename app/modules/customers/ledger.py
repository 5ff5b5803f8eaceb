# app/modules/customers/ledger.py
"""
Customer ledger: cumulative purchase stats, tier promotion and loyalty points.

These functions only mutate the Customer instance held by the session. The
caller commits, so a sale and the stats it produces land in one transaction.
"""
import math
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from app.shared.money import ZERO, to_money
from app.shared.database.models import Customer

# Ascending rank; a customer is only ever moved up this list automatically
TIER_RANK = {"regular": 0, "wholesale": 1, "vip": 2}


class InsufficientLoyaltyPoints(Exception):
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient loyalty points: {available} available, {requested} requested"
        )


def evaluate_tier(current_type: str, total_spent: Decimal, thresholds: Dict[str, float]) -> str:
    """
    Highest tier whose threshold total_spent strictly exceeds, never lower
    than the current tier.
    """
    best = current_type or "regular"
    for tier, threshold in sorted(thresholds.items(), key=lambda item: item[1]):
        if tier not in TIER_RANK:
            continue
        if total_spent > Decimal(str(threshold)) and TIER_RANK[tier] > TIER_RANK.get(best, 0):
            best = tier
    return best


def _recompute_average(customer: Customer):
    if customer.total_orders > 0:
        customer.average_order_value = to_money(Decimal(customer.total_spent) / customer.total_orders)
    else:
        customer.average_order_value = ZERO


def record_purchase(
    customer: Customer,
    order_value: Decimal,
    thresholds: Dict[str, float],
    when: Optional[datetime] = None,
) -> Customer:
    customer.total_orders = (customer.total_orders or 0) + 1
    customer.total_spent = to_money(Decimal(customer.total_spent or 0) + to_money(order_value))
    _recompute_average(customer)
    customer.last_purchase = when or datetime.now()
    customer.customer_type = evaluate_tier(customer.customer_type, customer.total_spent, thresholds)
    return customer


def reverse_purchase(customer: Customer, order_value: Decimal) -> Customer:
    """Undo a purchase on refund; the tier is left as it is"""
    customer.total_spent = max(to_money(Decimal(customer.total_spent or 0) - to_money(order_value)), ZERO)
    customer.total_orders = max((customer.total_orders or 0) - 1, 0)
    _recompute_average(customer)
    return customer


def points_for(order_value: Decimal, rate: float) -> int:
    """Points earned for an order: floor(value x rate)"""
    if order_value <= 0 or rate <= 0:
        return 0
    return int(math.floor(Decimal(order_value) * Decimal(str(rate))))


def add_loyalty_points(customer: Customer, points: int) -> Customer:
    if points < 0:
        raise ValueError("Points must be a non-negative integer")
    customer.loyalty_points = (customer.loyalty_points or 0) + points
    return customer


def redeem_loyalty_points(customer: Customer, points: int) -> Customer:
    if points < 0:
        raise ValueError("Points must be a non-negative integer")
    available = customer.loyalty_points or 0
    if points > available:
        raise InsufficientLoyaltyPoints(available, points)
    customer.loyalty_points = available - points
    return customer


def remove_loyalty_points(customer: Customer, points: int) -> Customer:
    """Take back earned points on refund, floored at zero"""
    customer.loyalty_points = max((customer.loyalty_points or 0) - max(points, 0), 0)
    return customer
