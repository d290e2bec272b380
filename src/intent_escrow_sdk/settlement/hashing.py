"""EIP-712 struct hashes, domain separators and typed-data digests.

Every struct hash is keccak256(abi.encode(TYPEHASH, member...)) with nested
structs reduced to their own struct hash first. The member order follows the
Solidity declaration and is load-bearing.
"""

from typing import Optional, Union

from eth_abi import encode
from eth_utils import keccak

from .errors import InputValidationError
from .typehashes import (
    EIP712_DOMAIN_TYPEHASH,
    ESCROW_PARAMS_TYPEHASH,
    INTENT_PARAMS_TYPEHASH,
    PAYEE_ACCOUNT_ESCROW_PARAMS_TYPEHASH,
    PERMIT2_DOMAIN_TYPEHASH,
    PERMIT_DETAILS_TYPEHASH,
    PERMIT_SINGLE_TYPEHASH,
    PERMIT_TRANSFER_FROM_TYPEHASH,
    PERMIT_WITNESS_TRANSFER_FROM_TYPEHASH,
    RANGE_TYPEHASH,
    TOKEN_PERMISSIONS_TYPEHASH,
)
from .types import (
    EscrowParams,
    IntentParams,
    PayeeAccountEscrowParams,
    PermitDetails,
    PermitSingle,
    PermitTransferFrom,
    Range,
    TokenPermissions,
)
from .utils import check_uint, normalize_address

EIP712_PREFIX = b"\x19\x01"


def hash_range(value: Range) -> bytes:
    return keccak(
        encode(["bytes32", "uint256", "uint256"], [RANGE_TYPEHASH, value.min, value.max])
    )


def hash_intent(intent: IntentParams) -> bytes:
    """Struct hash of IntentParams (the range is hashed first)."""
    return keccak(
        encode(
            ["bytes32", "address", "bytes32", "uint64", "bytes32", "bytes32", "bytes32", "uint256"],
            [
                INTENT_PARAMS_TYPEHASH,
                intent.token,
                hash_range(intent.range),
                intent.expiry_time,
                intent.currency,
                intent.payment_method,
                intent.payee_details,
                intent.price,
            ],
        )
    )


def hash_escrow(escrow: Union[EscrowParams, PayeeAccountEscrowParams]) -> bytes:
    """Struct hash of either escrow shape.

    The two shapes differ in type hash and member order, so each is encoded
    from its own member list.
    """
    if isinstance(escrow, EscrowParams):
        return keccak(
            encode(
                [
                    "bytes32", "uint256", "address", "uint256", "uint256", "uint256",
                    "address", "address", "uint256", "bytes32", "bytes32", "bytes32",
                    "address", "uint256",
                ],
                [ESCROW_PARAMS_TYPEHASH, *escrow.abi_tuple()],
            )
        )
    if isinstance(escrow, PayeeAccountEscrowParams):
        return keccak(
            encode(
                [
                    "bytes32", "uint256", "address", "uint256", "uint256", "uint256",
                    "address", "uint256", "bytes32", "bytes32", "bytes32", "bytes32",
                    "address", "uint256",
                ],
                [PAYEE_ACCOUNT_ESCROW_PARAMS_TYPEHASH, *escrow.abi_tuple()],
            )
        )
    raise InputValidationError(f"Unsupported escrow type: {type(escrow).__name__}")


def hash_token_permissions(permitted: TokenPermissions) -> bytes:
    return keccak(
        encode(
            ["bytes32", "address", "uint256"],
            [TOKEN_PERMISSIONS_TYPEHASH, permitted.token, permitted.amount],
        )
    )


def hash_permit_transfer_from(permit: PermitTransferFrom, spender: str) -> bytes:
    """Struct hash of a plain Permit2 PermitTransferFrom.

    The spender is not a field of the permit struct the settler receives,
    but it is part of what the owner signs.
    """
    return keccak(
        encode(
            ["bytes32", "bytes32", "address", "uint256", "uint256"],
            [
                PERMIT_TRANSFER_FROM_TYPEHASH,
                hash_token_permissions(permit.permitted),
                normalize_address(spender, "spender"),
                permit.nonce,
                permit.deadline,
            ],
        )
    )


def hash_permit_witness_transfer_from(
    permit: PermitTransferFrom, spender: str, witness: IntentParams
) -> bytes:
    """Struct hash of a Permit2 PermitWitnessTransferFrom with an intent witness."""
    return keccak(
        encode(
            ["bytes32", "bytes32", "address", "uint256", "uint256", "bytes32"],
            [
                PERMIT_WITNESS_TRANSFER_FROM_TYPEHASH,
                hash_token_permissions(permit.permitted),
                normalize_address(spender, "spender"),
                permit.nonce,
                permit.deadline,
                hash_intent(witness),
            ],
        )
    )


def hash_permit_details(details: PermitDetails) -> bytes:
    return keccak(
        encode(
            ["bytes32", "address", "uint160", "uint48", "uint48"],
            [PERMIT_DETAILS_TYPEHASH, *details.abi_tuple()],
        )
    )


def hash_permit_single(permit: PermitSingle) -> bytes:
    return keccak(
        encode(
            ["bytes32", "bytes32", "address", "uint256"],
            [
                PERMIT_SINGLE_TYPEHASH,
                hash_permit_details(permit.details),
                permit.spender,
                permit.sig_deadline,
            ],
        )
    )


def domain_separator(
    name: str, chain_id: int, verifying_contract: str, version: Optional[str] = None
) -> bytes:
    """Build an EIP-712 domain separator.

    Args:
        name: Domain name (e.g., "MainnetTakeIntent" or "Permit2")
        chain_id: Chain ID of the connected network
        verifying_contract: Contract that verifies the signature
        version: Domain version; None for domains without one (Permit2)

    Returns:
        bytes32 domain separator
    """
    check_uint(chain_id, 256, "chain_id")
    contract = normalize_address(verifying_contract, "verifying_contract")

    if version is None:
        return keccak(
            encode(
                ["bytes32", "bytes32", "uint256", "address"],
                [PERMIT2_DOMAIN_TYPEHASH, keccak(text=name), chain_id, contract],
            )
        )
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [EIP712_DOMAIN_TYPEHASH, keccak(text=name), keccak(text=version), chain_id, contract],
        )
    )


def typed_data_digest(separator: bytes, struct_hash: bytes) -> bytes:
    """keccak256(0x1901 || domainSeparator || structHash)."""
    if len(separator) != 32 or len(struct_hash) != 32:
        raise InputValidationError("Domain separator and struct hash must be 32 bytes")
    return keccak(EIP712_PREFIX + separator + struct_hash)
