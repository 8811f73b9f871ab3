"""Money helpers - all amounts are carried as integer cents"""

from decimal import Decimal, ROUND_HALF_UP

# Balances closer to zero than this are treated as settled
MONEY_ZERO_TOLERANCE_CENTS = 1


def to_cents(amount: Decimal | float | int | str) -> int:
    """
    Convert a dollar amount to integer cents, rounding half up.

    Floats go through their shortest repr so 0.1 + 0.2 style noise does not
    leak into the ledger: to_cents(400.035) == 40004.
    """
    if isinstance(amount, float):
        amount = repr(amount)
    value = Decimal(amount) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_money_zero(cents: int) -> bool:
    """True when a balance is within one cent of zero"""
    return abs(cents) < MONEY_ZERO_TOLERANCE_CENTS


def format_cents(cents: int) -> str:
    """Render cents as a dollar string, e.g. 40003 -> '$400.03'"""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}${whole:,}.{frac:02d}"
