"""Shared helpers for hex handling and amount formatting."""

import re
from typing import Union

from eth_utils import decode_hex, encode_hex

from .errors import StructuralError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]*$")

BytesLike = Union[bytes, bytearray, str]


def as_bytes(data: BytesLike, label: str = "data") -> bytes:
    """Normalize ``0x``-prefixed hex or raw bytes to bytes.

    Raises:
        StructuralError: If the string is not ``0x``-prefixed, even-length hex
    """
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if not isinstance(data, str) or not _HEX_PATTERN.match(data):
        raise StructuralError(f"{label} must be a 0x-prefixed hex string")
    if len(data) % 2 != 0:
        raise StructuralError(f"{label} must have even length (valid hex)")
    return decode_hex(data)


def as_hex(data: BytesLike) -> str:
    """Normalize bytes or hex to a lowercase ``0x``-prefixed string."""
    return encode_hex(as_bytes(data))


def parse_int(value: Union[int, str], label: str = "value") -> int:
    """Parse a decimal or ``0x`` hex string (or int) into an int.

    Raises:
        StructuralError: If the value cannot be parsed
    """
    if isinstance(value, bool):
        raise StructuralError(f"Invalid {label}: {value!r}")
    if isinstance(value, int):
        return value
    try:
        text = str(value).strip()
        return int(text, 16) if text.lower().startswith("0x") else int(text, 10)
    except ValueError as e:
        raise StructuralError(f"Invalid {label}: {value!r}") from e


def format_units(amount: int, decimals: int = 18) -> str:
    """Format a token amount to a human readable string.

    Args:
        amount: Amount in base units
        decimals: Token decimals (default: 18)

    Returns:
        Human readable string (e.g., "1.5")
    """
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{str(frac).zfill(decimals).rstrip('0')}"


def parse_units(amount: str, decimals: int = 18) -> int:
    """Parse a human readable amount to base units.

    Args:
        amount: Human readable amount (e.g., "1.5")
        decimals: Token decimals (default: 18)

    Returns:
        Amount in base units (e.g., 1500000000000000000)

    Raises:
        ValueError: If the amount has more fractional digits than decimals
    """
    whole, _, frac = amount.strip().partition(".")
    if len(frac) > decimals:
        raise ValueError(f"Too many decimal places: {amount} (max {decimals})")
    return int(whole or "0") * 10**decimals + int(frac.ljust(decimals, "0") or "0")
