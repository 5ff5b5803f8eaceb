# app/modules/sales/calculations.py
"""
Arithmetic of the sale engine: line totals, header adjustments, change and the
POS cart (including return lines with negative quantities).

Every computed amount is a Decimal quantized to 2 places with ROUND_HALF_UP.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from app.shared.money import Number, ZERO, to_money


def line_total(quantity: int, unit_price: Number, discount: Number = 0, tax: Number = 0) -> Decimal:
    """(unit_price x quantity) - line discount + line tax"""
    return to_money(to_money(unit_price) * quantity - to_money(discount) + to_money(tax))


def tax_from_rate(quantity: int, unit_price: Number, rate: Number) -> Decimal:
    """Line tax from a percentage rate applied to unit_price x quantity"""
    return to_money(to_money(unit_price) * quantity * Decimal(str(rate)) / 100)


def header_discount_amount(subtotal: Decimal, value: Number, discount_type: str = "fixed") -> Decimal:
    if discount_type == "percentage":
        if subtotal <= 0:
            return ZERO
        return to_money(subtotal * Decimal(str(value)) / 100)
    return to_money(value)


def compute_change(amount_paid: Number, total: Number) -> Decimal:
    """Signed: negative means the customer still owes money"""
    return to_money(to_money(amount_paid) - to_money(total))


def compute_balance_due(amount_paid: Number, total: Number) -> Decimal:
    return max(to_money(total) - to_money(amount_paid), ZERO)


def payment_status_for(amount_paid: Number, total: Number) -> str:
    paid = to_money(amount_paid)
    if paid >= to_money(total):
        return "paid"
    if paid > 0:
        return "partial"
    return "pending"


def settlement_direction(total: Number) -> str:
    """
    collect: the customer pays the store
    refund: the store pays the customer back (returns outweigh purchases)
    """
    amount = to_money(total)
    if amount > 0:
        return "collect"
    if amount < 0:
        return "refund"
    return "none"


@dataclass
class LineAmounts:
    quantity: int
    unit_price: Decimal
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    cost_price: Decimal = ZERO

    @property
    def gross(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    @property
    def total(self) -> Decimal:
        return line_total(self.quantity, self.unit_price, self.discount, self.tax)

    @property
    def cost(self) -> Decimal:
        return to_money(self.cost_price * self.quantity)

    @property
    def profit(self) -> Decimal:
        return to_money(self.total - self.cost)


@dataclass
class SaleTotals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    line_totals: List[Decimal] = field(default_factory=list)


def compute_sale_totals(
    lines: Iterable[LineAmounts],
    discount: Number = 0,
    tax: Number = 0,
    shipping: Number = 0,
    discount_type: str = "fixed",
) -> SaleTotals:
    """
    Derive the financial summary of a sale.

    subtotal = sum of line totals (after line discounts and line taxes)
    total    = subtotal - header discount + header tax + shipping
    """
    lines = list(lines)
    line_totals = [line.total for line in lines]
    subtotal = to_money(sum(line_totals, ZERO))
    header_discount = header_discount_amount(subtotal, discount, discount_type)
    header_tax = to_money(tax)
    shipping_amount = to_money(shipping)
    total = to_money(subtotal - header_discount + header_tax + shipping_amount)

    total_cost = to_money(sum((line.cost for line in lines), ZERO))
    gross_sales = to_money(sum((line.gross for line in lines), ZERO))

    return SaleTotals(
        subtotal=subtotal,
        discount=header_discount,
        tax=header_tax,
        shipping=shipping_amount,
        total=total,
        gross_profit=to_money(gross_sales - total_cost),
        net_profit=to_money(total - total_cost),
        line_totals=line_totals,
    )


# ==================== CART ====================

@dataclass
class CartLine:
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    is_return: bool = False
    source_sale_item_id: Optional[int] = None

    @property
    def total(self) -> Decimal:
        return line_total(self.quantity, self.unit_price, self.discount, self.tax)


class Cart:
    """
    POS cart. Purchases have positive quantities; returns of previously sold
    items are merged in as lines with negative quantities, so the running
    total drops and may go below zero (refund due to the customer).
    """

    def __init__(self, lines: Optional[Iterable[CartLine]] = None):
        self.lines: List[CartLine] = list(lines or [])

    def add_item(
        self,
        product_id: int,
        name: str,
        quantity: int,
        unit_price: Number,
        discount: Number = 0,
        tax: Number = 0,
    ) -> CartLine:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        line = CartLine(
            product_id=product_id,
            name=name,
            quantity=quantity,
            unit_price=to_money(unit_price),
            discount=to_money(discount),
            tax=to_money(tax),
        )
        self.lines.append(line)
        return line

    def add_return(
        self,
        product_id: int,
        name: str,
        sold_quantity: int,
        unit_price: Number,
        return_quantity: Optional[int] = None,
        source_sale_item_id: Optional[int] = None,
        sold_discount: Number = 0,
        sold_tax: Number = 0,
    ) -> CartLine:
        """
        Return a previously sold line; defaults to the full sold quantity.
        The sold line's discount and tax are mirrored pro rata, so a full
        return gives back exactly what the line cost.
        """
        quantity = sold_quantity if return_quantity is None else return_quantity
        if quantity < 1:
            raise ValueError("Return quantity must be at least 1")
        if quantity > sold_quantity:
            raise ValueError(
                f"Cannot return {quantity} units, only {sold_quantity} were sold"
            )
        share = Decimal(quantity) / sold_quantity
        line = CartLine(
            product_id=product_id,
            name=name,
            quantity=-quantity,
            unit_price=to_money(unit_price),
            discount=-to_money(to_money(sold_discount) * share),
            tax=-to_money(to_money(sold_tax) * share),
            is_return=True,
            source_sale_item_id=source_sale_item_id,
        )
        self.lines.append(line)
        return line

    @property
    def purchase_subtotal(self) -> Decimal:
        return to_money(sum((l.total for l in self.lines if not l.is_return), ZERO))

    @property
    def return_subtotal(self) -> Decimal:
        return to_money(sum((abs(l.total) for l in self.lines if l.is_return), ZERO))

    def totals(
        self,
        discount: Number = 0,
        tax: Number = 0,
        shipping: Number = 0,
        discount_type: str = "fixed",
    ) -> SaleTotals:
        return compute_sale_totals(
            (LineAmounts(l.quantity, l.unit_price, l.discount, l.tax) for l in self.lines),
            discount=discount,
            tax=tax,
            shipping=shipping,
            discount_type=discount_type,
        )
