"""Execution payload assembly.

:class:`SettlementBuilder` threads the intent, escrow, transfer variant,
signatures and domains through one immutable value and produces the
``execute(...)`` call the buyer submits. Intermediate hashes are derived on
demand from its fields; nothing is cached between calls.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence, Type, Union

from eth_abi import encode

from .actions import (
    AllowanceTransfer,
    PlainPermit,
    TransferActionKind,
    WitnessPermit,
    encode_settlement_actions,
    selector,
)
from .errors import InputValidationError, PreflightError, SelectorMismatchError
from .hashing import hash_token_permissions
from .signing import (
    EIP712Domain,
    SigningRequest,
    build_escrow_signing_request,
    build_intent_signing_request,
    build_permit_transfer_signing_request,
    build_permit_witness_signing_request,
)
from .types import Action, EscrowParams, ExecutionPayload, IntentParams
from .utils import check_uint, normalize_address, normalize_bytes, normalize_bytes32
from .validation import PreflightIssue, check_alignment

logger = logging.getLogger(__name__)

EXECUTE_SIGNATURE = "execute(address,bytes32,bytes32,bytes32,bytes[])"
EXECUTE_SELECTOR = bytes.fromhex("5ab38858")


def assemble_execute(
    payer: str,
    token_permissions_hash: bytes,
    escrow_typed_hash: bytes,
    intent_typed_hash: bytes,
    actions: Sequence[Union[Action, bytes, str]],
) -> bytes:
    """ABI-encode the settler's execute() call.

    Args:
        payer: Address whose tokens fund the settlement
        token_permissions_hash: Struct hash of the permitted TokenPermissions
        escrow_typed_hash: EIP-712 digest of the escrow
        intent_typed_hash: EIP-712 digest of the intent
        actions: Ordered actions (Action, raw bytes or 0x-hex)

    Returns:
        execute() call data
    """
    payer = normalize_address(payer, "payer")
    hashes = [
        normalize_bytes32(token_permissions_hash, "token_permissions_hash"),
        normalize_bytes32(escrow_typed_hash, "escrow_typed_hash"),
        normalize_bytes32(intent_typed_hash, "intent_typed_hash"),
    ]
    encoded_actions = [
        a.data if isinstance(a, Action) else normalize_bytes(a, f"actions[{i}]")
        for i, a in enumerate(actions)
    ]

    data = selector(EXECUTE_SIGNATURE) + encode(
        ["address", "bytes32", "bytes32", "bytes32", "bytes[]"],
        [payer, *hashes, encoded_actions],
    )
    if data[:4] != EXECUTE_SELECTOR:
        raise SelectorMismatchError("execute", EXECUTE_SELECTOR, data[:4])
    return data


class SettlementFlow(str, Enum):
    """The three ways a settlement is funded."""

    SELLER_INTENT = "seller_intent"
    BUYER_INTENT = "buyer_intent"
    BULK_SELL = "bulk_sell"

    @property
    def transfer_variant(self) -> Type:
        return _VARIANTS[self]

    @classmethod
    def of(cls, transfer: TransferActionKind) -> "SettlementFlow":
        for flow, variant in _VARIANTS.items():
            if isinstance(transfer, variant):
                return flow
        raise InputValidationError(f"Unknown transfer variant: {type(transfer).__name__}")


_VARIANTS = {
    SettlementFlow.SELLER_INTENT: WitnessPermit,
    SettlementFlow.BUYER_INTENT: PlainPermit,
    SettlementFlow.BULK_SELL: AllowanceTransfer,
}


@dataclass(frozen=True)
class SettlementBuilder:
    """Explicit settlement state, from unsigned structs to execute() call data.

    Example:
        >>> builder = SettlementBuilder(intent, escrow, WitnessPermit(permit, transfer),
        ...                             settlement_domain, permit2_domain)
        >>> builder = builder.with_signatures(escrow_signature=sig, permit_signature=psig)
        >>> payload = builder.build()
    """

    intent: IntentParams
    escrow: EscrowParams
    transfer: TransferActionKind
    settlement_domain: EIP712Domain
    permit2_domain: Optional[EIP712Domain] = None
    escrow_signature: bytes = b""
    intent_signature: bytes = b""
    permit_signature: bytes = b""
    payer: Optional[str] = None
    """Defaults to ``escrow.payer``."""

    def __post_init__(self) -> None:
        if not isinstance(self.intent, IntentParams):
            raise InputValidationError("Invalid intent: expected IntentParams")
        if not isinstance(self.escrow, EscrowParams):
            raise InputValidationError("Invalid escrow: execute() requires EscrowParams with payer")
        for name in ("escrow_signature", "intent_signature", "permit_signature"):
            object.__setattr__(self, name, normalize_bytes(getattr(self, name), name))
        if self.payer is not None:
            object.__setattr__(self, "payer", normalize_address(self.payer, "payer"))
        if not isinstance(self.settlement_domain, dict):
            raise InputValidationError("Invalid settlement_domain: expected a dict")
        check_uint(self.settlement_domain.get("chainId"), 256, "settlement_domain chainId")
        normalize_address(
            self.settlement_domain.get("verifyingContract"), "settlement_domain verifyingContract"
        )

    @property
    def flow(self) -> SettlementFlow:
        return SettlementFlow.of(self.transfer)

    @property
    def settler_address(self) -> str:
        return self.settlement_domain["verifyingContract"]

    def with_signatures(self, **signatures: Union[str, bytes]) -> "SettlementBuilder":
        """Return a copy with the given signatures filled in."""
        unknown = set(signatures) - {"escrow_signature", "intent_signature", "permit_signature"}
        if unknown:
            raise InputValidationError(f"Unknown signature fields: {sorted(unknown)}")
        return replace(self, **signatures)

    def intent_signing_request(self) -> SigningRequest:
        return build_intent_signing_request(self.intent, self.settlement_domain)

    def escrow_signing_request(self) -> SigningRequest:
        return build_escrow_signing_request(self.escrow, self.settlement_domain)

    def permit_signing_request(self) -> SigningRequest:
        """Permit2 request for the signature-transfer variants.

        Raises:
            InputValidationError: For bulk sell (the allowance is granted by a
                separate PermitSingle) or when no Permit2 domain is set
        """
        if self.permit2_domain is None:
            raise InputValidationError("permit2_domain is required to sign a permit")
        if isinstance(self.transfer, WitnessPermit):
            return build_permit_witness_signing_request(
                self.transfer.permit, self.settler_address, self.intent, self.permit2_domain
            )
        if isinstance(self.transfer, PlainPermit):
            return build_permit_transfer_signing_request(
                self.transfer.permit, self.settler_address, self.permit2_domain
            )
        raise InputValidationError(f"{self.flow.value} flow has no permit to sign")

    def preflight(self, now: Optional[int] = None) -> List[PreflightIssue]:
        return check_alignment(
            self.intent, self.escrow, self.transfer, self.settler_address, now=now
        )

    def actions(self) -> List[Action]:
        return encode_settlement_actions(
            self.escrow,
            self.intent,
            self.transfer,
            escrow_signature=self.escrow_signature,
            intent_signature=self.intent_signature,
            permit_signature=self.permit_signature,
        )

    def build(self, strict: bool = False, now: Optional[int] = None) -> ExecutionPayload:
        """Build the execute() payload.

        Args:
            strict: Raise instead of warning when preflight finds issues
            now: Unix timestamp for expiry checks

        Returns:
            ExecutionPayload ready for submission

        Raises:
            PreflightError: If strict and inputs are misaligned
            InputValidationError: If a required signature is missing
        """
        issues = self.preflight(now=now)
        for issue in issues:
            logger.warning(f"Preflight [{issue.kind.value}]: {issue.message}")
        if strict and issues:
            raise PreflightError(issues)

        if not self.escrow_signature:
            raise InputValidationError("escrow_signature is required")
        if isinstance(self.transfer, (WitnessPermit, PlainPermit)) and not self.permit_signature:
            raise InputValidationError(f"permit_signature is required for {self.flow.value}")
        if not isinstance(self.transfer, WitnessPermit) and not self.intent_signature:
            raise InputValidationError(f"intent_signature is required for {self.flow.value}")

        token_permissions_hash = hash_token_permissions(self.transfer.token_permissions())
        escrow_typed_hash = self.escrow_signing_request().digest()
        intent_typed_hash = self.intent_signing_request().digest()
        logger.debug(
            f"tokenPermissionsHash=0x{token_permissions_hash.hex()} "
            f"escrowTypedHash=0x{escrow_typed_hash.hex()} "
            f"intentTypedHash=0x{intent_typed_hash.hex()}"
        )

        actions = self.actions()
        payer = self.payer or self.escrow.payer
        calldata = assemble_execute(
            payer, token_permissions_hash, escrow_typed_hash, intent_typed_hash, actions
        )
        logger.info(
            f"Built {self.flow.value} settlement for escrow {self.escrow.id}: "
            f"{len(actions)} actions, {len(calldata)} bytes"
        )
        return ExecutionPayload(
            payer=payer,
            token_permissions_hash=token_permissions_hash,
            escrow_typed_hash=escrow_typed_hash,
            intent_typed_hash=intent_typed_hash,
            actions=actions,
            calldata=calldata,
        )
