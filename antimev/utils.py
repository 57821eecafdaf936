# antimev/utils.py
"""
AntiMEV Utilities: amount conversion and hex helpers.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from .errors import InvalidAmountError

# Enough significant digits for any uint256 at any decimals
AMOUNT_PRECISION = 100

UINT256_MAX = 2**256 - 1
UINT256_DIGITS = len(str(UINT256_MAX))


def amount_to_raw_amount(amount: str, decimals: int) -> int:
    """
    Convert a decimal amount string to raw integer units.

    Args:
        amount: Decimal string, e.g. "1.5"
        decimals: Asset decimals, e.g. 18

    Returns:
        Raw amount, e.g. 1500000000000000000

    Raises:
        InvalidAmountError: Non-numeric, negative, too many fraction digits,
            or larger than uint256
    """
    if decimals < 0:
        raise InvalidAmountError(f"decimals must be >= 0, got {decimals}")

    try:
        value = Decimal(amount.strip())
    except (InvalidOperation, AttributeError) as e:
        raise InvalidAmountError(f"Invalid amount: {amount!r}", cause=e)

    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise InvalidAmountError(f"Amount must not be negative: {amount!r}")
    if value and value.adjusted() + decimals > UINT256_DIGITS:
        raise InvalidAmountError(f"Amount {amount!r} exceeds uint256")

    # scaleb only moves the exponent; the precision must hold every input digit
    with localcontext() as ctx:
        ctx.prec = max(AMOUNT_PRECISION, len(value.as_tuple().digits))
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmountError(
                f"Amount {amount!r} has more than {decimals} fractional digits"
            )
    raw_amount = int(scaled)
    if raw_amount > UINT256_MAX:
        raise InvalidAmountError(f"Amount {amount!r} exceeds uint256")
    return raw_amount


def raw_amount_to_amount(raw_amount: int, decimals: int) -> str:
    """Convert raw integer units back to a decimal string (trailing zeros trimmed)."""
    if raw_amount < 0:
        raise InvalidAmountError(f"Raw amount must not be negative: {raw_amount}")

    with localcontext() as ctx:
        ctx.prec = AMOUNT_PRECISION
        value = Decimal(raw_amount).scaleb(-decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def to_hex(value: Union[int, bytes]) -> str:
    """0x-prefixed hex for a quantity or a byte string."""
    if isinstance(value, int):
        return hex(value)
    return "0x" + bytes(value).hex()


def from_hex(value: str) -> bytes:
    """Decode 0x-prefixed (or bare) hex into bytes."""
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def hex_to_int(value: Union[str, int]) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)
