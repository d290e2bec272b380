"""Settler actions.

Every action is one ABI-encoded call consumed by the settler's ``execute``
dispatcher: ``selector(4 bytes) || abi.encode(args)``. Selectors are pinned;
an encoded action whose prefix differs from its pin means the canonical
signature drifted from the deployed settler and is a fatal build error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Sequence, Union

from eth_abi import encode
from eth_utils import keccak

from .errors import InputValidationError, SelectorMismatchError
from .types import (
    Action,
    AllowanceTransferDetails,
    EscrowParams,
    IntentParams,
    PermitTransferFrom,
    SignatureTransferDetails,
    TokenPermissions,
)
from .utils import normalize_bytes


class ActionKind(str, Enum):
    """Settler entry points reachable through execute()."""

    ESCROW_AND_INTENT_CHECK = "ESCROW_AND_INTENT_CHECK"
    ESCROW_PARAMS_CHECK = "ESCROW_PARAMS_CHECK"
    SIGNATURE_TRANSFER_FROM_WITH_WITNESS = "SIGNATURE_TRANSFER_FROM_WITH_WITNESS"
    SIGNATURE_TRANSFER_FROM = "SIGNATURE_TRANSFER_FROM"
    BULK_SELL_TRANSFER_FROM = "BULK_SELL_TRANSFER_FROM"


ACTION_ARGUMENT_TYPES: Dict[ActionKind, List[str]] = {
    ActionKind.ESCROW_AND_INTENT_CHECK: [EscrowParams.ABI_TYPE, IntentParams.ABI_TYPE, "bytes"],
    ActionKind.ESCROW_PARAMS_CHECK: [EscrowParams.ABI_TYPE, "bytes"],
    ActionKind.SIGNATURE_TRANSFER_FROM_WITH_WITNESS: [
        PermitTransferFrom.ABI_TYPE,
        SignatureTransferDetails.ABI_TYPE,
        IntentParams.ABI_TYPE,
        "bytes",
    ],
    ActionKind.SIGNATURE_TRANSFER_FROM: [
        PermitTransferFrom.ABI_TYPE,
        SignatureTransferDetails.ABI_TYPE,
        "bytes",
    ],
    ActionKind.BULK_SELL_TRANSFER_FROM: [
        AllowanceTransferDetails.ABI_TYPE,
        IntentParams.ABI_TYPE,
        "bytes",
    ],
}

CANONICAL_SIGNATURES: Dict[ActionKind, str] = {
    kind: f"{kind.value}({','.join(types)})" for kind, types in ACTION_ARGUMENT_TYPES.items()
}

# Selectors of the deployed settler
EXPECTED_SELECTORS: Dict[ActionKind, bytes] = {
    ActionKind.ESCROW_AND_INTENT_CHECK: bytes.fromhex("d663f022"),
    ActionKind.ESCROW_PARAMS_CHECK: bytes.fromhex("f3fd3d2f"),
    ActionKind.SIGNATURE_TRANSFER_FROM_WITH_WITNESS: bytes.fromhex("ba828c8c"),
    ActionKind.SIGNATURE_TRANSFER_FROM: bytes.fromhex("55972674"),
    ActionKind.BULK_SELL_TRANSFER_FROM: bytes.fromhex("48acb820"),
}

_KIND_BY_SELECTOR = {value: kind for kind, value in EXPECTED_SELECTORS.items()}


def selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 of a canonical function signature."""
    return keccak(text=signature)[:4]


def encode_call(signature: str, arg_types: Sequence[str], args: Sequence) -> bytes:
    """ABI-encode a call: selector followed by the encoded argument tuple."""
    return selector(signature) + encode(list(arg_types), list(args))


def action_kind_for_selector(value: bytes) -> Optional[ActionKind]:
    """Look up the action kind a pinned selector belongs to."""
    return _KIND_BY_SELECTOR.get(bytes(value))


def encode_action(kind: Union[ActionKind, str], args: Sequence) -> Action:
    """Encode one action and check it against its pinned selector.

    Args:
        kind: Action kind
        args: Argument tuple in canonical order (structs as ``abi_tuple()``)

    Returns:
        Encoded action

    Raises:
        SelectorMismatchError: If the encoded prefix differs from the pin
    """
    kind = ActionKind(kind)
    data = encode_call(CANONICAL_SIGNATURES[kind], ACTION_ARGUMENT_TYPES[kind], args)
    expected = EXPECTED_SELECTORS[kind]
    if data[:4] != expected:
        raise SelectorMismatchError(kind.value, expected, data[:4])
    return Action(kind=kind.value, data=data)


def encode_escrow_and_intent_check(
    escrow: EscrowParams, intent: IntentParams, intent_signature: Union[str, bytes] = b""
) -> Action:
    """Check escrow against intent; the signature is empty when the intent
    is authorized by the witness permit."""
    return encode_action(
        ActionKind.ESCROW_AND_INTENT_CHECK,
        [
            escrow.abi_tuple(),
            intent.abi_tuple(),
            normalize_bytes(intent_signature, "intent signature"),
        ],
    )


def encode_escrow_params_check(
    escrow: EscrowParams, escrow_signature: Union[str, bytes]
) -> Action:
    """Check the relayer's signature over the escrow."""
    return encode_action(
        ActionKind.ESCROW_PARAMS_CHECK,
        [escrow.abi_tuple(), normalize_bytes(escrow_signature, "escrow signature")],
    )


@dataclass(frozen=True)
class WitnessPermit:
    """Seller-intent transfer: the Permit2 signature carries the intent as witness."""

    action_kind: ClassVar[ActionKind] = ActionKind.SIGNATURE_TRANSFER_FROM_WITH_WITNESS
    intent_signature_in_check: ClassVar[bool] = False

    permit: PermitTransferFrom
    transfer: SignatureTransferDetails

    def __post_init__(self) -> None:
        _check_signature_transfer(self.permit, self.transfer)

    @property
    def token(self) -> str:
        return self.permit.permitted.token

    @property
    def amount(self) -> int:
        return self.transfer.requested_amount

    @property
    def recipient(self) -> str:
        return self.transfer.to

    @property
    def deadline(self) -> Optional[int]:
        return self.permit.deadline

    def token_permissions(self) -> TokenPermissions:
        return self.permit.permitted

    def encode(
        self,
        intent: IntentParams,
        intent_signature: bytes = b"",
        permit_signature: bytes = b"",
    ) -> Action:
        return encode_action(
            self.action_kind,
            [self.permit.abi_tuple(), self.transfer.abi_tuple(), intent.abi_tuple(), permit_signature],
        )


@dataclass(frozen=True)
class PlainPermit:
    """Buyer-intent transfer: plain Permit2 signature transfer from the payer."""

    action_kind: ClassVar[ActionKind] = ActionKind.SIGNATURE_TRANSFER_FROM
    intent_signature_in_check: ClassVar[bool] = True

    permit: PermitTransferFrom
    transfer: SignatureTransferDetails

    def __post_init__(self) -> None:
        _check_signature_transfer(self.permit, self.transfer)

    @property
    def token(self) -> str:
        return self.permit.permitted.token

    @property
    def amount(self) -> int:
        return self.transfer.requested_amount

    @property
    def recipient(self) -> str:
        return self.transfer.to

    @property
    def deadline(self) -> Optional[int]:
        return self.permit.deadline

    def token_permissions(self) -> TokenPermissions:
        return self.permit.permitted

    def encode(
        self,
        intent: IntentParams,
        intent_signature: bytes = b"",
        permit_signature: bytes = b"",
    ) -> Action:
        return encode_action(
            self.action_kind,
            [self.permit.abi_tuple(), self.transfer.abi_tuple(), permit_signature],
        )


@dataclass(frozen=True)
class AllowanceTransfer:
    """Bulk-sell transfer pulled from an existing Permit2 allowance.

    The maker's intent signature goes to both the check and the transfer action.
    """

    action_kind: ClassVar[ActionKind] = ActionKind.BULK_SELL_TRANSFER_FROM
    intent_signature_in_check: ClassVar[bool] = True

    details: AllowanceTransferDetails

    def __post_init__(self) -> None:
        if not isinstance(self.details, AllowanceTransferDetails):
            raise InputValidationError("Invalid transfer details: expected AllowanceTransferDetails")

    @property
    def token(self) -> str:
        return self.details.token

    @property
    def amount(self) -> int:
        return self.details.amount

    @property
    def recipient(self) -> str:
        return self.details.to

    @property
    def deadline(self) -> Optional[int]:
        return None

    def token_permissions(self) -> TokenPermissions:
        return TokenPermissions(token=self.details.token, amount=self.details.amount)

    def encode(
        self,
        intent: IntentParams,
        intent_signature: bytes = b"",
        permit_signature: bytes = b"",
    ) -> Action:
        return encode_action(
            self.action_kind,
            [self.details.abi_tuple(), intent.abi_tuple(), intent_signature],
        )


TransferActionKind = Union[WitnessPermit, PlainPermit, AllowanceTransfer]


def _check_signature_transfer(
    permit: PermitTransferFrom, transfer: SignatureTransferDetails
) -> None:
    if not isinstance(permit, PermitTransferFrom):
        raise InputValidationError("Invalid permit: expected PermitTransferFrom")
    if not isinstance(transfer, SignatureTransferDetails):
        raise InputValidationError("Invalid transfer details: expected SignatureTransferDetails")


def encode_settlement_actions(
    escrow: EscrowParams,
    intent: IntentParams,
    transfer: TransferActionKind,
    escrow_signature: Union[str, bytes],
    intent_signature: Union[str, bytes] = b"",
    permit_signature: Union[str, bytes] = b"",
) -> List[Action]:
    """Encode the three settlement actions in protocol order.

    Order: escrow-and-intent check, escrow-params check, transfer.

    Args:
        escrow: Escrow attested by the relayer
        intent: Maker intent
        transfer: Transfer variant of the flow
        escrow_signature: Relayer signature over the escrow
        intent_signature: Maker signature over the intent (buyer intent and
            bulk sell; empty for the witness flow)
        permit_signature: Permit2 signature (signature-transfer variants)

    Returns:
        Ordered action list
    """
    if not isinstance(escrow, EscrowParams):
        raise InputValidationError("execute() settlement requires EscrowParams with payer")
    intent_sig = normalize_bytes(intent_signature, "intent signature")
    permit_sig = normalize_bytes(permit_signature, "permit signature")

    check_sig = intent_sig if transfer.intent_signature_in_check else b""
    return [
        encode_escrow_and_intent_check(escrow, intent, check_sig),
        encode_escrow_params_check(escrow, escrow_signature),
        transfer.encode(intent, intent_sig, permit_sig),
    ]
