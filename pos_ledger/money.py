"""
Money and quantity arithmetic.

Every amount in the ledger is a Decimal. Floats are only ever
accepted at the edges and converted through their string form
so that 0.1 stays 0.1 instead of 0.1000000000000000055511...
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")
QUANTITY_DECIMALS = 3
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Convert an int, str, float or Decimal to Decimal."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_quantity(value) -> Decimal:
    return to_decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def fits_places(value, places: int) -> bool:
    """True when value carries no more than `places` decimals (1.500 fits 1)."""
    return to_decimal(value).normalize().as_tuple().exponent >= -places


def allocate_line_totals(amounts) -> list[Decimal]:
    """
    Round exact line amounts to cents so they add up to the rounded total.

    Each line is floored to the cent and the cents left over go to
    the lines with the largest remainders, earlier lines first on a
    tie. Lines are expected to be positive.
    """
    exact = [to_decimal(a) for a in amounts]
    totals = [a.quantize(MONEY_PLACES, rounding=ROUND_FLOOR) for a in exact]
    target = quantize_money(sum(exact, ZERO))
    cents = int((target - sum(totals, ZERO)) / MONEY_PLACES)

    by_remainder = sorted(
        range(len(exact)),
        key=lambda i: exact[i] - totals[i],
        reverse=True,
    )
    for i in by_remainder[:cents]:
        totals[i] += MONEY_PLACES
    return totals


def within_tolerance(a, b, tolerance) -> bool:
    return abs(to_decimal(a) - to_decimal(b)) <= to_decimal(tolerance)


def is_whole(quantity) -> bool:
    value = to_decimal(quantity)
    return value == value.to_integral_value()
