"""String commitments for intent and escrow fields.

Currency codes, payment methods and payee details never go on-chain in the
clear; the settler only sees their keccak256 commitments.
"""

from eth_utils import keccak


def commit_string(text: str) -> bytes:
    """Commit to a human readable string.

    Args:
        text: Currency code, payment method name, etc. (e.g., "USD", "wechat")

    Returns:
        bytes32 keccak256 of the UTF-8 encoding
    """
    return keccak(text.encode("utf-8"))


def commit_payee_details(account: str, qr_code: str = "", memo: str = "") -> bytes:
    """Commit to payee details, mirroring Solidity's abi.encodePacked.

    The three parts are concatenated as raw UTF-8 bytes with no length
    prefixes or padding.

    Args:
        account: Payee account identifier
        qr_code: Payment QR code payload (optional)
        memo: Transfer memo (optional)

    Returns:
        bytes32 keccak256 of account || qr_code || memo
    """
    packed = account.encode("utf-8") + qr_code.encode("utf-8") + memo.encode("utf-8")
    return keccak(packed)


def hex32(value: bytes) -> str:
    """Render a commitment as a 0x-prefixed hex string."""
    return "0x" + value.hex()
