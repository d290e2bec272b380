"""Constants and input helpers for the intent escrow settler."""

from decimal import Decimal, InvalidOperation
from typing import Union

from eth_utils import is_address, is_hexstr, to_checksum_address, decode_hex

from .errors import InputValidationError

# Canonical Permit2 deployment (same address on every EVM chain)
PERMIT2_ADDRESS = "0x000000000022D473030F116dDEE9F6B43aC78BA3"
PERMIT2_DOMAIN_NAME = "Permit2"

# Settlement domain used by the execute() settler
SETTLEMENT_DOMAIN_NAME = "MainnetTakeIntent"
SETTLEMENT_DOMAIN_VERSION = "1"

# Domain of the settler revision that exposes the direct entry points
DIRECT_SETTLER_DOMAIN_NAME = "MainnetUserTxn"

Amount = Union[int, str, Decimal]


def normalize_address(value: str, field: str) -> str:
    """Validate an address and return it checksummed.

    Raises:
        InputValidationError: If the value is not a 20-byte hex address
    """
    if not isinstance(value, str) or not is_address(value):
        raise InputValidationError(f"Invalid {field}: {value!r}")
    return to_checksum_address(value)


def normalize_bytes32(value: Union[str, bytes], field: str) -> bytes:
    """Accept a 32-byte value as bytes or 0x-hex and return raw bytes."""
    raw = normalize_bytes(value, field)
    if len(raw) != 32:
        raise InputValidationError(
            f"Invalid {field}: expected 32 bytes, got {len(raw)}"
        )
    return raw


def normalize_bytes(value: Union[str, bytes], field: str) -> bytes:
    """Accept a dynamic byte string as bytes or 0x-hex and return raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        if value in ("", "0x"):
            return b""
        if is_hexstr(value) and len(value.removeprefix("0x")) % 2 == 0:
            return decode_hex(value)
    raise InputValidationError(f"Invalid {field}: {value!r}")


def check_uint(value: int, bits: int, field: str) -> int:
    """Check that value fits in uintN.

    Raises:
        InputValidationError: If the value is not an int or is out of range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError(f"Invalid {field}: {value!r} is not an integer")
    if value < 0 or value >= 1 << bits:
        raise InputValidationError(
            f"Invalid {field}: {value} does not fit in uint{bits}"
        )
    return value


def parse_units(amount: Amount, decimals: int) -> int:
    """Parse a human readable amount into base units.

    Args:
        amount: Human readable amount (e.g., "1.5")
        decimals: Token decimals (e.g., 6 for USDC)

    Returns:
        Amount in base units (e.g., 1500000)

    Raises:
        InputValidationError: If the amount is negative, malformed or has more
            fractional digits than the token supports
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InputValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value < 0:
        raise InputValidationError(f"Invalid amount: {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InputValidationError(
            f"Invalid amount: {amount} has more than {decimals} decimals"
        )
    return int(scaled)


def parse_ether(amount: Amount) -> int:
    """Parse an 18-decimal amount (prices and rates use this scale)."""
    return parse_units(amount, 18)


def format_units(value: int, decimals: int) -> str:
    """Format base units to a human readable string.

    Args:
        value: Amount in base units (e.g., 1500000)
        decimals: Token decimals

    Returns:
        Human readable string (e.g., "1.5")
    """
    text = format(Decimal(value).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
