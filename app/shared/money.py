# app/shared/money.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, Optional, Union

from pydantic import PlainSerializer

Number = Union[Decimal, int, float, str]

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

# Decimal in Python, plain number in JSON responses
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def to_money(value: Optional[Number]) -> Decimal:
    """Quantize to 2 decimal places, rounding half up"""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
