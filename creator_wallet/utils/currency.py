"""Currency conversion utilities

Internal storage unit: centavos (100 centavos = R$ 1).
API input unit: reais as decimals (e.g. Decimal("150.50")).
Display: pt-BR formatted BRL, presentation only.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from creator_wallet.domain.exceptions import InvalidAmount

CENTS_PER_UNIT = 100
_CENT = Decimal("0.01")


def to_minor_units(amount: Decimal | int | str) -> int:
    """
    Convert a decimal currency amount to integer centavos.

    Floats are rejected outright so binary rounding never reaches the ledger.

    Example:
        Decimal("150.50") -> 15050
    """
    if isinstance(amount, float):
        raise InvalidAmount("Monetary amounts must not be floats")
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmount(f"Not a monetary amount: {amount!r}") from e
    if not value.is_finite():
        raise InvalidAmount(f"Not a monetary amount: {amount!r}")
    if value != value.quantize(_CENT, rounding=ROUND_HALF_UP):
        raise InvalidAmount(f"{amount} has more than 2 decimal places")
    return int(value * CENTS_PER_UNIT)


def from_minor_units(cents: int) -> Decimal:
    return (Decimal(cents) / CENTS_PER_UNIT).quantize(_CENT)


def format_brl(cents: int) -> str:
    """
    Format centavos as Brazilian reais.

    Example:
        123456 -> "R$ 1.234,56"
        -5000  -> "-R$ 50,00"
    """
    sign = "-" if cents < 0 else ""
    units, remainder = divmod(abs(cents), CENTS_PER_UNIT)
    grouped = f"{units:,}".replace(",", ".")
    return f"{sign}R$ {grouped},{remainder:02d}"
