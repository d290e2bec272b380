"""Encoders for the settler's direct entry points.

Besides ``execute``, the settler exposes functions that bundle a whole flow
step in one call. ``takeSellerIntent`` uses the escrow shape with payer; the
bulk-sell pair and ``paid`` use the payee-account shape.
"""

from typing import Union

from .actions import encode_call
from .types import (
    EscrowParams,
    IntentParams,
    PayeeAccountEscrowParams,
    PermitSingle,
    PermitTransferFrom,
    SignatureTransferDetails,
)
from .utils import normalize_bytes

Signature = Union[str, bytes]

TAKE_SELLER_INTENT_TYPES = [
    PermitTransferFrom.ABI_TYPE,
    SignatureTransferDetails.ABI_TYPE,
    IntentParams.ABI_TYPE,
    EscrowParams.ABI_TYPE,
    "bytes",
    "bytes",
]
BULK_SELL_TYPES = [PermitSingle.ABI_TYPE, IntentParams.ABI_TYPE, "bytes", "bytes"]
TAKE_BULK_SELL_INTENT_TYPES = [
    PayeeAccountEscrowParams.ABI_TYPE,
    IntentParams.ABI_TYPE,
    "bytes",
    "bytes",
]
PAID_TYPES = [PayeeAccountEscrowParams.ABI_TYPE, "bytes"]


def _signature(name: str, types) -> str:
    return f"{name}({','.join(types)})"


TAKE_SELLER_INTENT_SIGNATURE = _signature("takeSellerIntent", TAKE_SELLER_INTENT_TYPES)
BULK_SELL_SIGNATURE = _signature("_bulkSell", BULK_SELL_TYPES)
TAKE_BULK_SELL_INTENT_SIGNATURE = _signature("_takeBulkSellIntent", TAKE_BULK_SELL_INTENT_TYPES)
PAID_SIGNATURE = _signature("paid", PAID_TYPES)


def encode_take_seller_intent(
    permit: PermitTransferFrom,
    transfer: SignatureTransferDetails,
    intent: IntentParams,
    escrow: EscrowParams,
    permit_signature: Signature,
    escrow_signature: Signature,
) -> bytes:
    """Buyer takes a seller intent in one call.

    Args:
        permit: Seller's witness permit
        transfer: Transfer into the settler
        intent: Seller intent (the permit witness)
        escrow: Escrow with payer
        permit_signature: Seller's PermitWitnessTransferFrom signature
        escrow_signature: Relayer's escrow signature

    Returns:
        Call data
    """
    return encode_call(
        TAKE_SELLER_INTENT_SIGNATURE,
        TAKE_SELLER_INTENT_TYPES,
        [
            permit.abi_tuple(),
            transfer.abi_tuple(),
            intent.abi_tuple(),
            escrow.abi_tuple(),
            normalize_bytes(permit_signature, "permit signature"),
            normalize_bytes(escrow_signature, "escrow signature"),
        ],
    )


def encode_bulk_sell(
    permit: PermitSingle,
    intent: IntentParams,
    permit_signature: Signature,
    intent_signature: Signature,
) -> bytes:
    """Seller grants the settler a Permit2 allowance and publishes an intent."""
    return encode_call(
        BULK_SELL_SIGNATURE,
        BULK_SELL_TYPES,
        [
            permit.abi_tuple(),
            intent.abi_tuple(),
            normalize_bytes(permit_signature, "permit signature"),
            normalize_bytes(intent_signature, "intent signature"),
        ],
    )


def encode_take_bulk_sell_intent(
    escrow: PayeeAccountEscrowParams,
    intent: IntentParams,
    escrow_signature: Signature,
    intent_signature: Signature,
) -> bytes:
    """Buyer takes a bulk-sell intent against an existing allowance."""
    return encode_call(
        TAKE_BULK_SELL_INTENT_SIGNATURE,
        TAKE_BULK_SELL_INTENT_TYPES,
        [
            escrow.abi_tuple(),
            intent.abi_tuple(),
            normalize_bytes(escrow_signature, "escrow signature"),
            normalize_bytes(intent_signature, "intent signature"),
        ],
    )


def encode_paid(escrow: PayeeAccountEscrowParams, escrow_signature: Signature) -> bytes:
    """Buyer marks the fiat leg of an escrow as paid."""
    return encode_call(
        PAID_SIGNATURE,
        PAID_TYPES,
        [escrow.abi_tuple(), normalize_bytes(escrow_signature, "escrow signature")],
    )
