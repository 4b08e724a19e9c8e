"""Fixed-point amount helpers.

Amounts are plain ``Decimal`` values carrying at most four fractional
digits. Arithmetic runs in a dedicated context wide enough that every
in-range add or subtract is exact; the checked helpers enforce the range.
"""
from decimal import Context, Decimal, InvalidOperation
from typing import Optional, Union

from exceptions import AmountOverflowError

SCALE = 4
ZERO = Decimal("0")
QUANTUM = Decimal(1).scaleb(-SCALE)

# Wide enough for any sum of two in-range amounts at scale 4
AMOUNT_CONTEXT = Context(prec=50)

# 96-bit mantissa at scale 4
MAX_AMOUNT = Decimal(2 ** 96 - 1).scaleb(-SCALE, context=AMOUNT_CONTEXT)


def parse_amount(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """Parse a raw amount, returning None for blank input.

    Raises ValueError for anything that is not a finite decimal with at
    most four fractional digits inside the representable range.
    """
    if value is None:
        return None
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    return validate_amount(amount)


def validate_amount(amount: Decimal) -> Decimal:
    if not amount.is_finite():
        raise ValueError("Amount must be finite")
    if amount.copy_abs() > MAX_AMOUNT:
        raise ValueError("Amount out of range")
    if amount.as_tuple().exponent < -SCALE:
        if amount != amount.quantize(QUANTUM, context=AMOUNT_CONTEXT):
            raise ValueError(f"Amount must have at most {SCALE} decimal places")
    return amount


def _check(result: Decimal, operation: str, left: Decimal, right: Decimal) -> Decimal:
    if result.copy_abs() > MAX_AMOUNT:
        raise AmountOverflowError(operation, left, right)
    return result


def checked_add(left: Decimal, right: Decimal) -> Decimal:
    return _check(AMOUNT_CONTEXT.add(left, right), "+", left, right)


def checked_sub(left: Decimal, right: Decimal) -> Decimal:
    return _check(AMOUNT_CONTEXT.subtract(left, right), "-", left, right)


def format_amount(value: Decimal) -> str:
    """Render with at most four fractional digits, trailing zeros stripped."""
    text = f"{value.quantize(QUANTUM, context=AMOUNT_CONTEXT):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        return "0"
    return text
