"""Intent Escrow Settlement Module.

This module encodes settlements for the intent escrow settler contract.

Key components:
- String and payee-detail commitments
- EIP-712 type hashes, struct hashes, domain separators and digests
- Signing requests for the maker, relayer and payer
- Settler actions with pinned selectors
- execute() payload assembly and revert decoding

Example usage:
    ```python
    from intent_escrow_sdk.settlement import (
        IntentParams,
        EscrowParams,
        Range,
        PermitTransferFrom,
        SignatureTransferDetails,
        TokenPermissions,
        WitnessPermit,
        SettlementBuilder,
        commit_string,
        commit_payee_details,
        create_settlement_domain,
        create_permit2_domain,
        sign_request,
    )

    intent = IntentParams(
        token=TOKEN,
        range=Range(min=10**18, max=2 * 10**18),
        expiry_time=int(time.time()) + 3600,
        currency=commit_string("USD"),
        payment_method=commit_string("wechat"),
        payee_details=commit_payee_details("alice@bank"),
        price=10**18,
    )

    builder = SettlementBuilder(
        intent=intent,
        escrow=escrow,
        transfer=WitnessPermit(permit, SignatureTransferDetails(SETTLER, volume)),
        settlement_domain=create_settlement_domain(SETTLER, chain_id),
        permit2_domain=create_permit2_domain(chain_id),
    )

    builder = builder.with_signatures(
        permit_signature=sign_request(SELLER_KEY, builder.permit_signing_request()),
        escrow_signature=sign_request(RELAYER_KEY, builder.escrow_signing_request()),
    )
    payload = builder.build()
    ```
"""

from .types import (
    Range,
    IntentParams,
    EscrowParams,
    PayeeAccountEscrowParams,
    TokenPermissions,
    PermitTransferFrom,
    SignatureTransferDetails,
    PermitDetails,
    PermitSingle,
    AllowanceTransferDetails,
    Action,
    ExecutionPayload,
)
from .commitments import commit_string, commit_payee_details, hex32
from .typehashes import (
    RANGE_TYPEHASH,
    INTENT_PARAMS_TYPEHASH,
    ESCROW_PARAMS_TYPEHASH,
    PAYEE_ACCOUNT_ESCROW_PARAMS_TYPEHASH,
    TOKEN_PERMISSIONS_TYPEHASH,
    encode_type,
    type_hash,
)
from .hashing import (
    hash_range,
    hash_intent,
    hash_escrow,
    hash_token_permissions,
    hash_permit_transfer_from,
    hash_permit_witness_transfer_from,
    hash_permit_single,
    domain_separator,
    typed_data_digest,
)
from .signing import (
    EIP712Domain,
    SigningRequest,
    TypedDataSigner,
    LocalAccountSigner,
    create_settlement_domain,
    create_permit2_domain,
    create_direct_settler_domain,
    build_intent_signing_request,
    build_escrow_signing_request,
    build_permit_witness_signing_request,
    build_permit_transfer_signing_request,
    build_permit_single_signing_request,
    sign_request,
    request_signature,
    recover_signer,
    verify_signature,
)
from .actions import (
    ActionKind,
    EXPECTED_SELECTORS,
    CANONICAL_SIGNATURES,
    WitnessPermit,
    PlainPermit,
    AllowanceTransfer,
    TransferActionKind,
    selector,
    encode_action,
    encode_settlement_actions,
)
from .payload import (
    EXECUTE_SELECTOR,
    SettlementFlow,
    SettlementBuilder,
    assemble_execute,
)
from .validation import PreflightIssue, check_alignment
from .direct_calls import (
    encode_take_seller_intent,
    encode_bulk_sell,
    encode_take_bulk_sell_intent,
    encode_paid,
)
from .errors import (
    IntentEscrowError,
    InputValidationError,
    SelectorMismatchError,
    SignatureUnavailableError,
    PreflightError,
    ChainClientError,
    ContractRevertError,
    SettlementErrorKind,
    SettlementError,
    SettlementReverted,
)
from .reverts import decode_revert
from .utils import (
    PERMIT2_ADDRESS,
    SETTLEMENT_DOMAIN_NAME,
    SETTLEMENT_DOMAIN_VERSION,
    DIRECT_SETTLER_DOMAIN_NAME,
    parse_units,
    parse_ether,
    format_units,
)

__all__ = [
    # Types
    "Range",
    "IntentParams",
    "EscrowParams",
    "PayeeAccountEscrowParams",
    "TokenPermissions",
    "PermitTransferFrom",
    "SignatureTransferDetails",
    "PermitDetails",
    "PermitSingle",
    "AllowanceTransferDetails",
    "Action",
    "ExecutionPayload",
    # Commitments
    "commit_string",
    "commit_payee_details",
    "hex32",
    # Hashing
    "RANGE_TYPEHASH",
    "INTENT_PARAMS_TYPEHASH",
    "ESCROW_PARAMS_TYPEHASH",
    "PAYEE_ACCOUNT_ESCROW_PARAMS_TYPEHASH",
    "TOKEN_PERMISSIONS_TYPEHASH",
    "encode_type",
    "type_hash",
    "hash_range",
    "hash_intent",
    "hash_escrow",
    "hash_token_permissions",
    "hash_permit_transfer_from",
    "hash_permit_witness_transfer_from",
    "hash_permit_single",
    "domain_separator",
    "typed_data_digest",
    # Signing
    "EIP712Domain",
    "SigningRequest",
    "TypedDataSigner",
    "LocalAccountSigner",
    "create_settlement_domain",
    "create_permit2_domain",
    "create_direct_settler_domain",
    "build_intent_signing_request",
    "build_escrow_signing_request",
    "build_permit_witness_signing_request",
    "build_permit_transfer_signing_request",
    "build_permit_single_signing_request",
    "sign_request",
    "request_signature",
    "recover_signer",
    "verify_signature",
    # Actions
    "ActionKind",
    "EXPECTED_SELECTORS",
    "CANONICAL_SIGNATURES",
    "WitnessPermit",
    "PlainPermit",
    "AllowanceTransfer",
    "TransferActionKind",
    "selector",
    "encode_action",
    "encode_settlement_actions",
    # Payload
    "EXECUTE_SELECTOR",
    "SettlementFlow",
    "SettlementBuilder",
    "assemble_execute",
    "PreflightIssue",
    "check_alignment",
    # Direct calls
    "encode_take_seller_intent",
    "encode_bulk_sell",
    "encode_take_bulk_sell_intent",
    "encode_paid",
    # Errors
    "IntentEscrowError",
    "InputValidationError",
    "SelectorMismatchError",
    "SignatureUnavailableError",
    "PreflightError",
    "ChainClientError",
    "ContractRevertError",
    "SettlementErrorKind",
    "SettlementError",
    "SettlementReverted",
    "decode_revert",
    # Utils
    "PERMIT2_ADDRESS",
    "SETTLEMENT_DOMAIN_NAME",
    "SETTLEMENT_DOMAIN_VERSION",
    "DIRECT_SETTLER_DOMAIN_NAME",
    "parse_units",
    "parse_ether",
    "format_units",
]
