"""Fixed-precision money helpers.

All split math goes through these so that amounts never pick up binary
floating point drift.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import SplitValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: object) -> Decimal:
    """
    Coerce user input to a Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1") rather than its
    binary expansion.

    Raises:
        SplitValidationError: If the value is not numeric
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise SplitValidationError(f"Not a numeric amount: {value!r}")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise SplitValidationError(f"Not a numeric amount: {value!r}") from e
    else:
        raise SplitValidationError(f"Not a numeric amount: {value!r}")

    if not result.is_finite():
        raise SplitValidationError(f"Not a finite amount: {value!r}")
    return result


def round2(amount: object) -> Decimal:
    """
    Round to 2 decimal places, half-up on the cent boundary.

    Args:
        amount: Anything ``to_decimal`` accepts

    Returns:
        Amount quantized to cents
    """
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def approx_equal(a: object, b: object) -> bool:
    """True iff the two amounts differ by at most one cent after rounding."""
    return abs(round2(a) - round2(b)) <= CENT
