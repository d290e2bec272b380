"""
Exception hierarchy and settler error taxonomy
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple


class IntentEscrowError(Exception):
    """Base exception for the intent escrow SDK"""

    pass


class InputValidationError(IntentEscrowError, ValueError):
    """Malformed address, hex, missing field or out-of-range amount"""

    pass


class SelectorMismatchError(IntentEscrowError):
    """Encoded action does not start with the pinned selector.

    Signals that a canonical signature or argument shape drifted from the
    on-chain settler. Never recoverable.
    """

    def __init__(self, kind: str, expected: bytes, actual: bytes):
        self.kind = kind
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Selector mismatch for {kind}: expected 0x{expected.hex()}, "
            f"encoded 0x{actual.hex()}"
        )


class SignatureUnavailableError(IntentEscrowError):
    """Signer rejected, failed or returned no signature"""

    pass


class PreflightError(IntentEscrowError):
    """Strict preflight checks found misaligned settlement inputs"""

    def __init__(self, issues: list):
        self.issues = issues
        details = "; ".join(issue.message for issue in issues)
        super().__init__(f"Preflight failed: {details}")


class ChainClientError(IntentEscrowError):
    """RPC unreachable, malformed response or receipt timeout"""

    pass


class ContractRevertError(ChainClientError):
    """Call or transaction reverted; carries raw revert data"""

    def __init__(self, message: str, data: bytes = b""):
        self.data = data
        super().__init__(message)


class SettlementErrorKind(str, Enum):
    """Custom errors the settler, its escrow and Permit2 can revert with."""

    SIGNATURE_EXPIRED = "SignatureExpired"
    INVALID_SIGNER = "InvalidSigner"
    INVALID_TOKEN = "InvalidToken"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_SPENDER = "InvalidSpender"
    INSUFFICIENT_ALLOWANCE = "InsufficientAllowance"
    ALLOWANCE_EXPIRED = "AllowanceExpired"
    ESCROW_ALREADY_EXISTS = "EscrowAlreadyExists"
    FORWARDER_NOT_ALLOWED = "ForwarderNotAllowed"
    TRANSFER_FROM_FAILED = "TransferFromFailed"
    ACTION_INVALID = "ActionInvalid"
    INVALID_SENDER = "InvalidSender"
    INVALID_SIGNATURE = "InvalidSignature"
    INVALID_SIGNATURE_LENGTH = "InvalidSignatureLength"
    INVALID_CONTRACT_SIGNATURE = "InvalidContractSignature"
    INVALID_NONCE = "InvalidNonce"
    ESCROW_NOT_EXISTS = "EscrowNotExists"
    ESCROW_STATUS_ERROR = "EscrowStatusError"
    INVALID_OFFSET = "InvalidOffset"
    CONFUSED_DEPUTY = "ConfusedDeputy"
    INVALID_TARGET = "InvalidTarget"
    TOO_MUCH_SLIPPAGE = "TooMuchSlippage"
    TRANSFER_FAILED = "TransferFailed"
    ERROR_STRING = "Error"
    PANIC = "Panic"
    UNKNOWN = "Unknown"


# Solidity argument types of each custom error, in declaration order
ERROR_ARGUMENT_TYPES = {
    SettlementErrorKind.SIGNATURE_EXPIRED: ("uint256",),
    SettlementErrorKind.INVALID_SIGNER: (),
    SettlementErrorKind.INVALID_TOKEN: (),
    SettlementErrorKind.INVALID_AMOUNT: (),
    SettlementErrorKind.INVALID_SPENDER: (),
    SettlementErrorKind.INSUFFICIENT_ALLOWANCE: ("uint256",),
    SettlementErrorKind.ALLOWANCE_EXPIRED: ("uint256",),
    SettlementErrorKind.ESCROW_ALREADY_EXISTS: ("bytes32",),
    SettlementErrorKind.FORWARDER_NOT_ALLOWED: (),
    SettlementErrorKind.TRANSFER_FROM_FAILED: (),
    SettlementErrorKind.ACTION_INVALID: ("uint256", "bytes4", "bytes"),
    SettlementErrorKind.INVALID_SENDER: (),
    SettlementErrorKind.INVALID_SIGNATURE: (),
    SettlementErrorKind.INVALID_SIGNATURE_LENGTH: (),
    SettlementErrorKind.INVALID_CONTRACT_SIGNATURE: (),
    SettlementErrorKind.INVALID_NONCE: (),
    SettlementErrorKind.ESCROW_NOT_EXISTS: ("bytes32",),
    SettlementErrorKind.ESCROW_STATUS_ERROR: ("bytes32", "uint8", "uint8"),
    SettlementErrorKind.INVALID_OFFSET: (),
    SettlementErrorKind.CONFUSED_DEPUTY: (),
    SettlementErrorKind.INVALID_TARGET: (),
    SettlementErrorKind.TOO_MUCH_SLIPPAGE: ("address", "uint256", "uint256"),
    SettlementErrorKind.TRANSFER_FAILED: (),
    SettlementErrorKind.ERROR_STRING: ("string",),
    SettlementErrorKind.PANIC: ("uint256",),
}

REMEDIATIONS = {
    SettlementErrorKind.SIGNATURE_EXPIRED: "Signature deadline has passed; regenerate the signature.",
    SettlementErrorKind.INVALID_SIGNER: (
        "Recovered signer is wrong; the intent must be signed by the maker "
        "and the escrow by the relayer."
    ),
    SettlementErrorKind.INVALID_TOKEN: "Use the same token for the permit, intent and escrow.",
    SettlementErrorKind.INVALID_AMOUNT: (
        "Check that the escrow volume lies within the intent range and "
        "matches the requested transfer amount."
    ),
    SettlementErrorKind.INVALID_SPENDER: "Transfer recipient must be the settler contract.",
    SettlementErrorKind.INSUFFICIENT_ALLOWANCE: "Increase the Permit2 allowance.",
    SettlementErrorKind.ALLOWANCE_EXPIRED: "Permit2 allowance expired; re-authorize or extend it.",
    SettlementErrorKind.ESCROW_ALREADY_EXISTS: "Pick a new escrow id.",
    SettlementErrorKind.FORWARDER_NOT_ALLOWED: "Call the settler directly, not through a forwarder.",
    SettlementErrorKind.TRANSFER_FROM_FAILED: "Check the payer's token balance and allowance.",
    SettlementErrorKind.ACTION_INVALID: "An action failed; see the inner error.",
    SettlementErrorKind.INVALID_SENDER: "Submit from the address the escrow names as buyer.",
    SettlementErrorKind.INVALID_SIGNATURE: "Relayer signature failed verification; re-sign the escrow.",
    SettlementErrorKind.INVALID_SIGNATURE_LENGTH: "Signatures must be 64 or 65 bytes.",
    SettlementErrorKind.INVALID_CONTRACT_SIGNATURE: "EIP-1271 signer rejected the signature.",
    SettlementErrorKind.INVALID_NONCE: "Permit nonce already used; pick an unused nonce.",
    SettlementErrorKind.ESCROW_NOT_EXISTS: "No escrow with this id; settle it first.",
    SettlementErrorKind.ESCROW_STATUS_ERROR: "Escrow is not in the status this call requires.",
    SettlementErrorKind.INVALID_OFFSET: "Action calldata is malformed; rebuild the payload.",
    SettlementErrorKind.CONFUSED_DEPUTY: "Action targets a forbidden contract.",
    SettlementErrorKind.INVALID_TARGET: "Action targets a forbidden contract.",
    SettlementErrorKind.TOO_MUCH_SLIPPAGE: "Received amount is below the expected minimum.",
    SettlementErrorKind.TRANSFER_FAILED: "Token transfer failed; check the token contract state.",
    SettlementErrorKind.ERROR_STRING: "Contract reverted with a reason string.",
    SettlementErrorKind.PANIC: "Contract panicked; this indicates a contract bug.",
    SettlementErrorKind.UNKNOWN: "Revert data not recognised; inspect the raw data.",
}


@dataclass(frozen=True)
class SettlementError:
    """A decoded settler revert."""

    kind: SettlementErrorKind
    selector: bytes
    args: Tuple[Any, ...] = ()
    raw: bytes = b""
    action_index: Optional[int] = None
    """Index of the failing action (ActionInvalid only)."""
    action_kind: Optional[str] = None
    """Name of the failing action kind (ActionInvalid only)."""
    inner: Optional["SettlementError"] = field(default=None)
    """Decoded revert of the failing action (ActionInvalid only)."""

    @property
    def remediation(self) -> str:
        if self.inner is not None:
            return self.inner.remediation
        return REMEDIATIONS[self.kind]

    def describe(self) -> str:
        """Human readable one-line summary."""
        if self.kind is SettlementErrorKind.ACTION_INVALID:
            inner = self.inner.describe() if self.inner else "unknown"
            return (
                f"ActionInvalid(index={self.action_index}, "
                f"action={self.action_kind or '0x' + self.args[1].hex()}): {inner}"
            )
        if self.args:
            rendered = ", ".join(
                "0x" + a.hex() if isinstance(a, bytes) else str(a) for a in self.args
            )
            return f"{self.kind.value}({rendered})"
        return self.kind.value


class SettlementReverted(IntentEscrowError):
    """Settlement simulation or transaction reverted with a decoded error"""

    def __init__(self, error: SettlementError):
        self.error = error
        super().__init__(f"Settlement reverted: {error.describe()}. {error.remediation}")
