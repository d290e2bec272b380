"""Signing requests for the maker, relayer and payer.

Each signed structure is wrapped in a :class:`SigningRequest` holding the
domain, type map, primary type and the *unhashed* message a wallet must sign.
The request also computes the digest locally so callers can compare it with
what the settler will recover against.

Works with various wallet types:
- eth_account private keys (``sign_request`` / ``LocalAccountSigner``)
- any wallet implementing the ``TypedDataSigner`` protocol
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, TypedDict, Union

from eth_account import Account
from eth_account.messages import encode_typed_data

from .errors import InputValidationError, SignatureUnavailableError
from .hashing import (
    domain_separator,
    hash_escrow,
    hash_intent,
    hash_permit_single,
    hash_permit_transfer_from,
    hash_permit_witness_transfer_from,
    typed_data_digest,
)
from .types import (
    EIP712_DOMAIN_TYPE,
    ESCROW_PARAMS_TYPES,
    INTENT_PARAMS_TYPES,
    PAYEE_ACCOUNT_ESCROW_PARAMS_TYPES,
    PERMIT2_DOMAIN_TYPE,
    PERMIT_SINGLE_TYPES,
    PERMIT_TRANSFER_FROM_TYPES,
    PERMIT_WITNESS_TRANSFER_FROM_TYPES,
    EscrowParams,
    IntentParams,
    PayeeAccountEscrowParams,
    PermitSingle,
    PermitTransferFrom,
)
from .utils import (
    DIRECT_SETTLER_DOMAIN_NAME,
    PERMIT2_ADDRESS,
    PERMIT2_DOMAIN_NAME,
    SETTLEMENT_DOMAIN_NAME,
    SETTLEMENT_DOMAIN_VERSION,
    normalize_address,
    normalize_bytes,
)

logger = logging.getLogger(__name__)


class EIP712Domain(TypedDict, total=False):
    """EIP-712 domain. Permit2 omits ``version``."""

    name: str
    version: str
    chainId: int
    verifyingContract: str


def create_settlement_domain(
    settler_address: str,
    chain_id: int,
    name: str = SETTLEMENT_DOMAIN_NAME,
    version: str = SETTLEMENT_DOMAIN_VERSION,
) -> EIP712Domain:
    """Create the EIP-712 domain of the settler contract.

    Args:
        settler_address: Address of the settler contract
        chain_id: Chain ID of the connected network, never a cached value
        name: Domain name fixed by the settler
        version: Domain version fixed by the settler

    Returns:
        EIP-712 domain dictionary

    Raises:
        InputValidationError: If the settler address is invalid
    """
    return {
        "name": name,
        "version": version,
        "chainId": chain_id,
        "verifyingContract": normalize_address(settler_address, "settler address"),
    }


def create_direct_settler_domain(settler_address: str, chain_id: int) -> EIP712Domain:
    """Domain for escrows and intents consumed by the direct entry points
    (``_takeBulkSellIntent``, ``paid``)."""
    return create_settlement_domain(
        settler_address, chain_id, name=DIRECT_SETTLER_DOMAIN_NAME
    )


def create_permit2_domain(
    chain_id: int, permit2_address: str = PERMIT2_ADDRESS
) -> EIP712Domain:
    """Create the Permit2 EIP-712 domain (no version field)."""
    return {
        "name": PERMIT2_DOMAIN_NAME,
        "chainId": chain_id,
        "verifyingContract": normalize_address(permit2_address, "permit2 address"),
    }


def separator_of(domain: EIP712Domain) -> bytes:
    """Domain separator of a domain dictionary."""
    return domain_separator(
        domain["name"],
        domain["chainId"],
        domain["verifyingContract"],
        domain.get("version"),
    )


def _stringify_ints(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _stringify_ints(v) for k, v in value.items()}
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _parse_ints(
    types: Dict[str, List[Dict[str, str]]], type_name: str, message: Dict[str, Any]
) -> Dict[str, Any]:
    parsed = {}
    for member in types[type_name]:
        value = message[member["name"]]
        if member["type"] in types:
            value = _parse_ints(types, member["type"], value)
        elif member["type"].startswith(("uint", "int")) and isinstance(value, str):
            value = int(value, 0)
        parsed[member["name"]] = value
    return parsed


@dataclass(frozen=True)
class SigningRequest:
    """Everything an external signer needs to sign one typed structure."""

    domain: EIP712Domain
    types: Dict[str, List[Dict[str, str]]]
    primary_type: str
    message: Dict[str, Any]
    struct_hash: bytes

    @property
    def domain_separator(self) -> bytes:
        return separator_of(self.domain)

    def digest(self) -> bytes:
        """EIP-712 digest the signer is expected to sign."""
        return typed_data_digest(self.domain_separator, self.struct_hash)

    def as_signer_params(self) -> Dict[str, Any]:
        """Params for ``TypedDataSigner.sign_typed_data``.

        Integers are rendered as decimal strings so uint256 values survive
        JSON transports.
        """
        return {
            "domain": dict(self.domain),
            "types": self.types,
            "primaryType": self.primary_type,
            "message": _stringify_ints(self.message),
        }

    def as_full_message(self) -> Dict[str, Any]:
        """Full typed data including ``EIP712Domain``, for eth_account."""
        domain_type = EIP712_DOMAIN_TYPE if "version" in self.domain else PERMIT2_DOMAIN_TYPE
        return {
            "types": {"EIP712Domain": domain_type, **self.types},
            "primaryType": self.primary_type,
            "domain": dict(self.domain),
            "message": self.message,
        }


def build_intent_signing_request(
    intent: IntentParams, domain: EIP712Domain
) -> SigningRequest:
    """Maker signs the intent directly under the settlement domain."""
    return SigningRequest(
        domain=domain,
        types=INTENT_PARAMS_TYPES,
        primary_type="IntentParams",
        message=intent.to_message(),
        struct_hash=hash_intent(intent),
    )


def build_escrow_signing_request(
    escrow: Union[EscrowParams, PayeeAccountEscrowParams], domain: EIP712Domain
) -> SigningRequest:
    """Relayer signs the escrow under the settlement domain."""
    if isinstance(escrow, EscrowParams):
        types = ESCROW_PARAMS_TYPES
    else:
        types = PAYEE_ACCOUNT_ESCROW_PARAMS_TYPES
    return SigningRequest(
        domain=domain,
        types=types,
        primary_type="EscrowParams",
        message=escrow.to_message(),
        struct_hash=hash_escrow(escrow),
    )


def build_permit_witness_signing_request(
    permit: PermitTransferFrom,
    spender: str,
    intent: IntentParams,
    domain: EIP712Domain,
) -> SigningRequest:
    """Seller signs a Permit2 transfer that carries the intent as witness.

    Args:
        permit: Permit2 permit (token, amount, nonce, deadline)
        spender: Settler address allowed to pull the tokens
        intent: Intent bound to the transfer
        domain: Permit2 domain

    Returns:
        SigningRequest with primary type PermitWitnessTransferFrom
    """
    spender = normalize_address(spender, "spender")
    return SigningRequest(
        domain=domain,
        types=PERMIT_WITNESS_TRANSFER_FROM_TYPES,
        primary_type="PermitWitnessTransferFrom",
        message={
            "permitted": permit.permitted.to_message(),
            "spender": spender,
            "nonce": permit.nonce,
            "deadline": permit.deadline,
            "witness": intent.to_message(),
        },
        struct_hash=hash_permit_witness_transfer_from(permit, spender, intent),
    )


def build_permit_transfer_signing_request(
    permit: PermitTransferFrom, spender: str, domain: EIP712Domain
) -> SigningRequest:
    """Payer signs a plain Permit2 signature transfer."""
    spender = normalize_address(spender, "spender")
    return SigningRequest(
        domain=domain,
        types=PERMIT_TRANSFER_FROM_TYPES,
        primary_type="PermitTransferFrom",
        message={
            "permitted": permit.permitted.to_message(),
            "spender": spender,
            "nonce": permit.nonce,
            "deadline": permit.deadline,
        },
        struct_hash=hash_permit_transfer_from(permit, spender),
    )


def build_permit_single_signing_request(
    permit: PermitSingle, domain: EIP712Domain
) -> SigningRequest:
    """Seller signs a Permit2 allowance for bulk selling."""
    return SigningRequest(
        domain=domain,
        types=PERMIT_SINGLE_TYPES,
        primary_type="PermitSingle",
        message=permit.to_message(),
        struct_hash=hash_permit_single(permit),
    )


class TypedDataSigner(Protocol):
    """Protocol for signers that can sign EIP-712 typed data."""

    async def get_address(self) -> str:
        """Get the signer's address."""
        ...

    async def sign_typed_data(self, params: Dict[str, Any]) -> str:
        """Sign EIP-712 typed data.

        Args:
            params: Dict with domain, types, primaryType, and message

        Returns:
            Signature as hex string
        """
        ...


def sign_request(private_key: str, request: SigningRequest) -> bytes:
    """Sign a request with a private key.

    Use this when you have direct access to a private key.

    Args:
        private_key: Private key (hex string with or without 0x prefix)
        request: Signing request to sign

    Returns:
        65-byte signature
    """
    signable = encode_typed_data(full_message=request.as_full_message())
    signed = Account.sign_message(signable, private_key=private_key)
    return bytes(signed.signature)


class LocalAccountSigner:
    """TypedDataSigner backed by a local private key."""

    def __init__(self, private_key: str):
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = Account.from_key(private_key).address

    async def get_address(self) -> str:
        return self._address

    async def sign_typed_data(self, params: Dict[str, Any]) -> str:
        domain = params["domain"]
        domain_type = EIP712_DOMAIN_TYPE if "version" in domain else PERMIT2_DOMAIN_TYPE
        types = params["types"]
        message = _parse_ints(types, params["primaryType"], params["message"])
        signable = encode_typed_data(
            full_message={
                "types": {"EIP712Domain": domain_type, **types},
                "primaryType": params["primaryType"],
                "domain": domain,
                "message": message,
            }
        )
        signed = Account.sign_message(signable, private_key=self._private_key)
        return "0x" + bytes(signed.signature).hex()


async def request_signature(signer: TypedDataSigner, request: SigningRequest) -> bytes:
    """Ask an external signer to sign a request.

    The signer receives the unhashed message and computes the digest itself.
    No retry is attempted.

    Raises:
        SignatureUnavailableError: If the signer fails or returns nothing
    """
    try:
        signature = await signer.sign_typed_data(request.as_signer_params())
    except Exception as e:
        raise SignatureUnavailableError(
            f"Signer failed for {request.primary_type}: {e}"
        ) from e

    if not signature:
        raise SignatureUnavailableError(f"Signer returned no signature for {request.primary_type}")

    try:
        raw = normalize_bytes(signature, "signature")
    except InputValidationError as e:
        raise SignatureUnavailableError(str(e)) from e
    logger.debug(f"Signed {request.primary_type}: digest=0x{request.digest().hex()}")
    return raw


def recover_signer(request: SigningRequest, signature: Union[str, bytes]) -> str:
    """Recover the address that produced an EOA signature over request."""
    signable = encode_typed_data(full_message=request.as_full_message())
    return Account.recover_message(signable, signature=normalize_bytes(signature, "signature"))


def verify_signature(
    request: SigningRequest,
    signature: Union[str, bytes],
    expected_signer: str,
) -> bool:
    """Verify a signature locally (for EOA signatures).

    Note: This only works for EOA signatures. Contract wallets are verified
    on-chain via EIP-1271.

    Returns:
        True if signature is valid and from expected signer
    """
    try:
        recovered: Optional[str] = recover_signer(request, signature)
    except Exception:
        return False
    return recovered is not None and recovered.lower() == expected_signer.lower()
