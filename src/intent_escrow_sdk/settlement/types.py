"""Settlement Types.

Data structures signed by the maker, relayer and payer, and consumed by the
settler. Each dataclass validates and normalises its fields once, on
construction, and is immutable afterwards.

``abi_tuple()`` returns the struct in Solidity member order for ``eth_abi``;
``to_message()`` returns the EIP-712 message a wallet signs.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from .errors import InputValidationError
from .utils import check_uint, normalize_address, normalize_bytes32

Bytes32 = Union[str, bytes]


def _hex(value: bytes) -> str:
    return "0x" + value.hex()


@dataclass(frozen=True)
class Range:
    """Accepted fill range of an intent, in token base units."""

    min: int
    max: int

    def __post_init__(self) -> None:
        check_uint(self.min, 256, "range.min")
        check_uint(self.max, 256, "range.max")

    def abi_tuple(self) -> Tuple[int, int]:
        return (self.min, self.max)

    def to_message(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class IntentParams:
    """Range-priced offer signed by the maker."""

    token: str
    """ERC-20 token being traded."""

    range: Range
    """Accepted volume range."""

    expiry_time: int
    """Unix timestamp (uint64) after which the intent is void."""

    currency: Bytes32
    """keccak256 of the fiat currency code."""

    payment_method: Bytes32
    """keccak256 of the payment method name."""

    payee_details: Bytes32
    """Packed commitment to the payee account, QR code and memo."""

    price: int
    """Price per token, 18 decimals."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "token", normalize_address(self.token, "intent.token"))
        if not isinstance(self.range, Range):
            raise InputValidationError("Invalid intent.range: expected a Range")
        check_uint(self.expiry_time, 64, "intent.expiry_time")
        for name in ("currency", "payment_method", "payee_details"):
            object.__setattr__(
                self, name, normalize_bytes32(getattr(self, name), f"intent.{name}")
            )
        check_uint(self.price, 256, "intent.price")

    ABI_TYPE = "(address,(uint256,uint256),uint64,bytes32,bytes32,bytes32,uint256)"

    def abi_tuple(self) -> tuple:
        return (
            self.token,
            self.range.abi_tuple(),
            self.expiry_time,
            self.currency,
            self.payment_method,
            self.payee_details,
            self.price,
        )

    def to_message(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "range": self.range.to_message(),
            "expiryTime": self.expiry_time,
            "currency": _hex(self.currency),
            "paymentMethod": _hex(self.payment_method),
            "payeeDetails": _hex(self.payee_details),
            "price": self.price,
        }


@dataclass(frozen=True)
class EscrowParams:
    """Concrete trade instance attested by the relayer (settler with payer)."""

    id: int
    """Caller-chosen id, unique per settler deployment."""

    token: str
    volume: int
    price: int
    usd_rate: int
    payer: str
    """Address whose tokens fund the escrow."""

    seller: str
    seller_fee_rate: int
    payment_method: Bytes32
    currency: Bytes32
    payee_details: Bytes32
    buyer: str
    buyer_fee_rate: int

    def __post_init__(self) -> None:
        for name in ("token", "payer", "seller", "buyer"):
            object.__setattr__(
                self, name, normalize_address(getattr(self, name), f"escrow.{name}")
            )
        for name in ("id", "volume", "price", "usd_rate", "seller_fee_rate", "buyer_fee_rate"):
            check_uint(getattr(self, name), 256, f"escrow.{name}")
        for name in ("payment_method", "currency", "payee_details"):
            object.__setattr__(
                self, name, normalize_bytes32(getattr(self, name), f"escrow.{name}")
            )

    ABI_TYPE = (
        "(uint256,address,uint256,uint256,uint256,address,address,uint256,"
        "bytes32,bytes32,bytes32,address,uint256)"
    )

    def abi_tuple(self) -> tuple:
        return (
            self.id,
            self.token,
            self.volume,
            self.price,
            self.usd_rate,
            self.payer,
            self.seller,
            self.seller_fee_rate,
            self.payment_method,
            self.currency,
            self.payee_details,
            self.buyer,
            self.buyer_fee_rate,
        )

    def to_message(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "token": self.token,
            "volume": self.volume,
            "price": self.price,
            "usdRate": self.usd_rate,
            "payer": self.payer,
            "seller": self.seller,
            "sellerFeeRate": self.seller_fee_rate,
            "paymentMethod": _hex(self.payment_method),
            "currency": _hex(self.currency),
            "payeeDetails": _hex(self.payee_details),
            "buyer": self.buyer,
            "buyerFeeRate": self.buyer_fee_rate,
        }


@dataclass(frozen=True)
class PayeeAccountEscrowParams:
    """Escrow shape of the direct-call settler: no payer, split payee fields.

    Shares the EIP-712 name ``EscrowParams`` with :class:`EscrowParams` but
    has a different member list, hence a different type hash.
    """

    id: int
    token: str
    volume: int
    price: int
    usd_rate: int
    seller: str
    seller_fee_rate: int
    payment_method: Bytes32
    currency: Bytes32
    payee_id: Bytes32
    payee_account: Bytes32
    buyer: str
    buyer_fee_rate: int

    def __post_init__(self) -> None:
        for name in ("token", "seller", "buyer"):
            object.__setattr__(
                self, name, normalize_address(getattr(self, name), f"escrow.{name}")
            )
        for name in ("id", "volume", "price", "usd_rate", "seller_fee_rate", "buyer_fee_rate"):
            check_uint(getattr(self, name), 256, f"escrow.{name}")
        for name in ("payment_method", "currency", "payee_id", "payee_account"):
            object.__setattr__(
                self, name, normalize_bytes32(getattr(self, name), f"escrow.{name}")
            )

    ABI_TYPE = (
        "(uint256,address,uint256,uint256,uint256,address,uint256,"
        "bytes32,bytes32,bytes32,bytes32,address,uint256)"
    )

    def abi_tuple(self) -> tuple:
        return (
            self.id,
            self.token,
            self.volume,
            self.price,
            self.usd_rate,
            self.seller,
            self.seller_fee_rate,
            self.payment_method,
            self.currency,
            self.payee_id,
            self.payee_account,
            self.buyer,
            self.buyer_fee_rate,
        )

    def to_message(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "token": self.token,
            "volume": self.volume,
            "price": self.price,
            "usdRate": self.usd_rate,
            "seller": self.seller,
            "sellerFeeRate": self.seller_fee_rate,
            "paymentMethod": _hex(self.payment_method),
            "currency": _hex(self.currency),
            "payeeId": _hex(self.payee_id),
            "payeeAccount": _hex(self.payee_account),
            "buyer": self.buyer,
            "buyerFeeRate": self.buyer_fee_rate,
        }


@dataclass(frozen=True)
class TokenPermissions:
    """Token and amount a Permit2 signature authorizes."""

    token: str
    amount: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "token", normalize_address(self.token, "permitted.token"))
        check_uint(self.amount, 256, "permitted.amount")

    def abi_tuple(self) -> Tuple[str, int]:
        return (self.token, self.amount)

    def to_message(self) -> Dict[str, Any]:
        return {"token": self.token, "amount": self.amount}


@dataclass(frozen=True)
class PermitTransferFrom:
    """Permit2 signature-transfer permit."""

    permitted: TokenPermissions
    nonce: int
    deadline: int

    def __post_init__(self) -> None:
        if not isinstance(self.permitted, TokenPermissions):
            raise InputValidationError("Invalid permit.permitted: expected TokenPermissions")
        check_uint(self.nonce, 256, "permit.nonce")
        check_uint(self.deadline, 256, "permit.deadline")

    ABI_TYPE = "((address,uint256),uint256,uint256)"

    def abi_tuple(self) -> tuple:
        return (self.permitted.abi_tuple(), self.nonce, self.deadline)


@dataclass(frozen=True)
class SignatureTransferDetails:
    """Recipient and amount of a Permit2 signature transfer."""

    to: str
    requested_amount: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "to", normalize_address(self.to, "transfer.to"))
        check_uint(self.requested_amount, 256, "transfer.requested_amount")

    ABI_TYPE = "(address,uint256)"

    def abi_tuple(self) -> Tuple[str, int]:
        return (self.to, self.requested_amount)


@dataclass(frozen=True)
class PermitDetails:
    """Permit2 allowance details."""

    token: str
    amount: int
    """uint160"""

    expiration: int
    """uint48 timestamp at which the allowance lapses."""

    nonce: int
    """uint48"""

    def __post_init__(self) -> None:
        object.__setattr__(self, "token", normalize_address(self.token, "details.token"))
        check_uint(self.amount, 160, "details.amount")
        check_uint(self.expiration, 48, "details.expiration")
        check_uint(self.nonce, 48, "details.nonce")

    def abi_tuple(self) -> tuple:
        return (self.token, self.amount, self.expiration, self.nonce)

    def to_message(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "amount": self.amount,
            "expiration": self.expiration,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class PermitSingle:
    """Permit2 allowance permit for a single token."""

    details: PermitDetails
    spender: str
    sig_deadline: int

    def __post_init__(self) -> None:
        if not isinstance(self.details, PermitDetails):
            raise InputValidationError("Invalid permit.details: expected PermitDetails")
        object.__setattr__(self, "spender", normalize_address(self.spender, "permit.spender"))
        check_uint(self.sig_deadline, 256, "permit.sig_deadline")

    ABI_TYPE = "((address,uint160,uint48,uint48),address,uint256)"

    def abi_tuple(self) -> tuple:
        return (self.details.abi_tuple(), self.spender, self.sig_deadline)

    def to_message(self) -> Dict[str, Any]:
        return {
            "details": self.details.to_message(),
            "spender": self.spender,
            "sigDeadline": self.sig_deadline,
        }


@dataclass(frozen=True)
class AllowanceTransferDetails:
    """Permit2 allowance transfer pulled by the settler."""

    from_: str
    to: str
    amount: int
    """uint160"""

    token: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_", normalize_address(self.from_, "transfer.from"))
        object.__setattr__(self, "to", normalize_address(self.to, "transfer.to"))
        check_uint(self.amount, 160, "transfer.amount")
        object.__setattr__(self, "token", normalize_address(self.token, "transfer.token"))

    ABI_TYPE = "(address,address,uint160,address)"

    def abi_tuple(self) -> tuple:
        return (self.from_, self.to, self.amount, self.token)


@dataclass(frozen=True)
class Action:
    """One ABI-encoded settler call, consumed by execute()."""

    kind: str
    data: bytes

    @property
    def selector(self) -> bytes:
        return self.data[:4]


@dataclass(frozen=True)
class ExecutionPayload:
    """Terminal artifact: the execute() call and its aggregate hashes."""

    payer: str
    token_permissions_hash: bytes
    escrow_typed_hash: bytes
    intent_typed_hash: bytes
    actions: List[Action] = field(default_factory=list)
    calldata: bytes = b""

    @property
    def action_kinds(self) -> List[str]:
        return [action.kind for action in self.actions]

    def calldata_hex(self) -> str:
        return _hex(self.calldata)


# EIP-712 domain types
EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

# Permit2 signs without a version field
PERMIT2_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

RANGE_TYPE = [
    {"name": "min", "type": "uint256"},
    {"name": "max", "type": "uint256"},
]

# EIP-712 types for the maker intent
INTENT_PARAMS_TYPES = {
    "IntentParams": [
        {"name": "token", "type": "address"},
        {"name": "range", "type": "Range"},
        {"name": "expiryTime", "type": "uint64"},
        {"name": "currency", "type": "bytes32"},
        {"name": "paymentMethod", "type": "bytes32"},
        {"name": "payeeDetails", "type": "bytes32"},
        {"name": "price", "type": "uint256"},
    ],
    "Range": RANGE_TYPE,
}

# EIP-712 types for the relayer escrow attestation
ESCROW_PARAMS_TYPES = {
    "EscrowParams": [
        {"name": "id", "type": "uint256"},
        {"name": "token", "type": "address"},
        {"name": "volume", "type": "uint256"},
        {"name": "price", "type": "uint256"},
        {"name": "usdRate", "type": "uint256"},
        {"name": "payer", "type": "address"},
        {"name": "seller", "type": "address"},
        {"name": "sellerFeeRate", "type": "uint256"},
        {"name": "paymentMethod", "type": "bytes32"},
        {"name": "currency", "type": "bytes32"},
        {"name": "payeeDetails", "type": "bytes32"},
        {"name": "buyer", "type": "address"},
        {"name": "buyerFeeRate", "type": "uint256"},
    ],
}

PAYEE_ACCOUNT_ESCROW_PARAMS_TYPES = {
    "EscrowParams": [
        {"name": "id", "type": "uint256"},
        {"name": "token", "type": "address"},
        {"name": "volume", "type": "uint256"},
        {"name": "price", "type": "uint256"},
        {"name": "usdRate", "type": "uint256"},
        {"name": "seller", "type": "address"},
        {"name": "sellerFeeRate", "type": "uint256"},
        {"name": "paymentMethod", "type": "bytes32"},
        {"name": "currency", "type": "bytes32"},
        {"name": "payeeId", "type": "bytes32"},
        {"name": "payeeAccount", "type": "bytes32"},
        {"name": "buyer", "type": "address"},
        {"name": "buyerFeeRate", "type": "uint256"},
    ],
}

TOKEN_PERMISSIONS_TYPE = [
    {"name": "token", "type": "address"},
    {"name": "amount", "type": "uint256"},
]

# Permit2 signature transfer carrying the intent as witness
PERMIT_WITNESS_TRANSFER_FROM_TYPES = {
    "PermitWitnessTransferFrom": [
        {"name": "permitted", "type": "TokenPermissions"},
        {"name": "spender", "type": "address"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
        {"name": "witness", "type": "IntentParams"},
    ],
    "TokenPermissions": TOKEN_PERMISSIONS_TYPE,
    **INTENT_PARAMS_TYPES,
}

PERMIT_TRANSFER_FROM_TYPES = {
    "PermitTransferFrom": [
        {"name": "permitted", "type": "TokenPermissions"},
        {"name": "spender", "type": "address"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
    "TokenPermissions": TOKEN_PERMISSIONS_TYPE,
}

PERMIT_SINGLE_TYPES = {
    "PermitSingle": [
        {"name": "details", "type": "PermitDetails"},
        {"name": "spender", "type": "address"},
        {"name": "sigDeadline", "type": "uint256"},
    ],
    "PermitDetails": [
        {"name": "token", "type": "address"},
        {"name": "amount", "type": "uint160"},
        {"name": "expiration", "type": "uint48"},
        {"name": "nonce", "type": "uint48"},
    ],
}
