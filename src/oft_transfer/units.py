from __future__ import annotations

from decimal import Decimal, InvalidOperation

from web3 import Web3

from .errors import InvalidAmount


def to_base_units(amount: str, decimals: int) -> int:
    """Convert a human-readable decimal string to integer base units.

    Args:
        amount: Decimal string such as ``"3.5"``.
        decimals: Token decimal precision.

    Returns:
        ``amount * 10**decimals`` as an integer.

    Raises:
        InvalidAmount: If ``amount`` is not a finite decimal, is negative, or
            carries more fractional digits than ``decimals`` allows.
    """
    try:
        value = Decimal(amount.strip())
    except (InvalidOperation, AttributeError) as e:
        raise InvalidAmount(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise InvalidAmount(f"Invalid amount: {amount!r}")
    if value < 0:
        raise InvalidAmount(f"Amount must not be negative: {amount}")

    # Exact integer scaling; the default Decimal context keeps only 28 digits.
    _, digits, exponent = value.as_tuple()
    coefficient = int("".join(map(str, digits)) or "0")
    shift = exponent + decimals
    if shift >= 0:
        return coefficient * 10**shift

    units, remainder = divmod(coefficient, 10**-shift)
    if remainder:
        raise InvalidAmount(
            f"Amount {amount} has more than {decimals} fractional digits"
        )
    return units


def from_base_units(value: int, decimals: int) -> Decimal:
    """Scale an integer base-unit amount back to a Decimal."""
    return Decimal(f"{value}E{-decimals}")


def format_units(value: int, decimals: int) -> str:
    """Format base units for display without exponent notation."""
    text = format(from_base_units(value, decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def address_to_bytes32(address: str) -> bytes:
    """Left-pad a 20-byte EVM address to the 32-byte protocol representation."""
    raw = Web3.to_bytes(hexstr=address)
    if len(raw) > 32:
        raise ValueError(f"Address longer than 32 bytes: {address}")
    return raw.rjust(32, b"\x00")
