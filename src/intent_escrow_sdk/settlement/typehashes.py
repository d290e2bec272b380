"""EIP-712 type strings and type hashes.

The literals below must match the settler's Solidity structs member for
member. Referenced struct definitions are appended sorted by name, as
EIP-712 requires.
"""

from typing import Dict, List, Set

from eth_utils import keccak

RANGE_TYPE_STRING = "Range(uint256 min,uint256 max)"

INTENT_PARAMS_TYPE_STRING = (
    "IntentParams(address token,Range range,uint64 expiryTime,bytes32 currency,"
    "bytes32 paymentMethod,bytes32 payeeDetails,uint256 price)" + RANGE_TYPE_STRING
)

ESCROW_PARAMS_TYPE_STRING = (
    "EscrowParams(uint256 id,address token,uint256 volume,uint256 price,"
    "uint256 usdRate,address payer,address seller,uint256 sellerFeeRate,"
    "bytes32 paymentMethod,bytes32 currency,bytes32 payeeDetails,address buyer,"
    "uint256 buyerFeeRate)"
)

PAYEE_ACCOUNT_ESCROW_PARAMS_TYPE_STRING = (
    "EscrowParams(uint256 id,address token,uint256 volume,uint256 price,"
    "uint256 usdRate,address seller,uint256 sellerFeeRate,bytes32 paymentMethod,"
    "bytes32 currency,bytes32 payeeId,bytes32 payeeAccount,address buyer,"
    "uint256 buyerFeeRate)"
)

TOKEN_PERMISSIONS_TYPE_STRING = "TokenPermissions(address token,uint256 amount)"

PERMIT_TRANSFER_FROM_TYPE_STRING = (
    "PermitTransferFrom(TokenPermissions permitted,address spender,uint256 nonce,"
    "uint256 deadline)" + TOKEN_PERMISSIONS_TYPE_STRING
)

PERMIT_WITNESS_TRANSFER_FROM_TYPE_STRING = (
    "PermitWitnessTransferFrom(TokenPermissions permitted,address spender,"
    "uint256 nonce,uint256 deadline,IntentParams witness)"
    + INTENT_PARAMS_TYPE_STRING
    + TOKEN_PERMISSIONS_TYPE_STRING
)

PERMIT_DETAILS_TYPE_STRING = (
    "PermitDetails(address token,uint160 amount,uint48 expiration,uint48 nonce)"
)

PERMIT_SINGLE_TYPE_STRING = (
    "PermitSingle(PermitDetails details,address spender,uint256 sigDeadline)"
    + PERMIT_DETAILS_TYPE_STRING
)

EIP712_DOMAIN_TYPE_STRING = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)

PERMIT2_DOMAIN_TYPE_STRING = (
    "EIP712Domain(string name,uint256 chainId,address verifyingContract)"
)


def type_hash(type_string: str) -> bytes:
    """keccak256 of the ASCII type string."""
    return keccak(type_string.encode("ascii"))


RANGE_TYPEHASH = type_hash(RANGE_TYPE_STRING)
INTENT_PARAMS_TYPEHASH = type_hash(INTENT_PARAMS_TYPE_STRING)
ESCROW_PARAMS_TYPEHASH = type_hash(ESCROW_PARAMS_TYPE_STRING)
PAYEE_ACCOUNT_ESCROW_PARAMS_TYPEHASH = type_hash(PAYEE_ACCOUNT_ESCROW_PARAMS_TYPE_STRING)
TOKEN_PERMISSIONS_TYPEHASH = type_hash(TOKEN_PERMISSIONS_TYPE_STRING)
PERMIT_TRANSFER_FROM_TYPEHASH = type_hash(PERMIT_TRANSFER_FROM_TYPE_STRING)
PERMIT_WITNESS_TRANSFER_FROM_TYPEHASH = type_hash(PERMIT_WITNESS_TRANSFER_FROM_TYPE_STRING)
PERMIT_DETAILS_TYPEHASH = type_hash(PERMIT_DETAILS_TYPE_STRING)
PERMIT_SINGLE_TYPEHASH = type_hash(PERMIT_SINGLE_TYPE_STRING)
EIP712_DOMAIN_TYPEHASH = type_hash(EIP712_DOMAIN_TYPE_STRING)
PERMIT2_DOMAIN_TYPEHASH = type_hash(PERMIT2_DOMAIN_TYPE_STRING)


def _struct_dependencies(
    primary_type: str, types: Dict[str, List[Dict[str, str]]], found: Set[str]
) -> Set[str]:
    if primary_type in found or primary_type not in types:
        return found
    found.add(primary_type)
    for member in types[primary_type]:
        base = member["type"].split("[", 1)[0]
        _struct_dependencies(base, types, found)
    return found


def encode_type(primary_type: str, types: Dict[str, List[Dict[str, str]]]) -> str:
    """Derive the EIP-712 type string of primary_type from a type map.

    Args:
        primary_type: Struct name to encode
        types: EIP-712 type map, as sent to a wallet

    Returns:
        Type string with referenced structs appended in name order
    """
    deps = _struct_dependencies(primary_type, types, set())
    deps.discard(primary_type)
    ordered = [primary_type] + sorted(deps)
    return "".join(
        name + "(" + ",".join(f"{m['type']} {m['name']}" for m in types[name]) + ")"
        for name in ordered
    )
