"""Settler Client.

Drives a settlement end to end against a live chain:

1. Resolve the chain id from the node and build both EIP-712 domains
2. Collect the signatures the flow needs from external signers
3. Build the execute() payload
4. Simulate, estimate gas (with fallback and cap), send, wait for the receipt

On-chain reverts are decoded once and returned in a :class:`SubmissionResult`
instead of being raised.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, TypedDict

from ..settlement import (
    AllowanceTransfer,
    EIP712Domain,
    EscrowParams,
    ExecutionPayload,
    IntentParams,
    PlainPermit,
    SettlementBuilder,
    SettlementError,
    SettlementReverted,
    TransferActionKind,
    TypedDataSigner,
    WitnessPermit,
    create_permit2_domain,
    create_settlement_domain,
    decode_revert,
    request_signature,
)
from ..settlement.errors import ChainClientError, ContractRevertError, InputValidationError
from ..settlement.utils import (
    PERMIT2_ADDRESS,
    SETTLEMENT_DOMAIN_NAME,
    SETTLEMENT_DOMAIN_VERSION,
    normalize_address,
)
from .chain import (
    DEFAULT_FALLBACK_GAS,
    DEFAULT_MAX_GAS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RECEIPT_TIMEOUT,
    ChainClient,
    Receipt,
    resolve_gas_limit,
)


class SettlerConfig(TypedDict, total=False):
    """Settler configuration."""

    settler_address: str
    """Settler contract address. Required"""

    domain_name: str
    """EIP-712 domain name. Default: MainnetTakeIntent"""

    domain_version: str
    """EIP-712 domain version. Default: 1"""

    permit2_address: str
    """Permit2 contract address. Default: canonical deployment"""

    fallback_gas: int
    """Gas used when estimation fails. Default: 10,000,000"""

    max_gas: int
    """Gas ceiling. Default: 16,777,216"""

    receipt_timeout: float
    """Seconds to wait for a receipt. Default: 120"""

    poll_interval: float
    """Seconds between receipt polls. Default: 2"""


@dataclass
class ResolvedSettlerConfig:
    """Resolved settler configuration with all defaults applied."""

    settler_address: str
    domain_name: str
    domain_version: str
    permit2_address: str
    fallback_gas: int
    max_gas: int
    receipt_timeout: float
    poll_interval: float

    @classmethod
    def from_config(cls, config: SettlerConfig) -> "ResolvedSettlerConfig":
        if not config.get("settler_address"):
            raise InputValidationError("settler_address is required")
        resolved = cls(
            settler_address=normalize_address(config["settler_address"], "settler_address"),
            domain_name=config.get("domain_name", SETTLEMENT_DOMAIN_NAME),
            domain_version=config.get("domain_version", SETTLEMENT_DOMAIN_VERSION),
            permit2_address=normalize_address(
                config.get("permit2_address", PERMIT2_ADDRESS), "permit2_address"
            ),
            fallback_gas=config.get("fallback_gas", DEFAULT_FALLBACK_GAS),
            max_gas=config.get("max_gas", DEFAULT_MAX_GAS),
            receipt_timeout=config.get("receipt_timeout", DEFAULT_RECEIPT_TIMEOUT),
            poll_interval=config.get("poll_interval", DEFAULT_POLL_INTERVAL),
        )
        if resolved.fallback_gas <= 0 or resolved.max_gas <= 0:
            raise InputValidationError("fallback_gas and max_gas must be positive")
        if resolved.receipt_timeout <= 0 or resolved.poll_interval <= 0:
            raise InputValidationError("receipt_timeout and poll_interval must be positive")
        return resolved


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a submission: a receipt, a decoded revert, or both."""

    receipt: Optional[Receipt] = None
    error: Optional[SettlementError] = None
    gas: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.receipt is not None and self.receipt.succeeded

    def unwrap(self) -> Receipt:
        """Return the receipt, raising if the settlement did not succeed.

        Raises:
            SettlementReverted: If simulation decoded a revert
            ChainClientError: If the transaction was mined but reverted
        """
        if self.error is not None:
            raise SettlementReverted(self.error)
        if self.receipt is None or not self.receipt.succeeded:
            raise ChainClientError("Settlement transaction reverted on-chain")
        return self.receipt


class SettlerClient:
    """Settles intents through the settler's execute() entry point.

    Example:
        >>> chain = JsonRpcChainClient(rpc_url, private_key=buyer_key)
        >>> client = SettlerClient(chain, {"settler_address": SETTLER})
        >>> builder = await client.builder(intent, escrow, WitnessPermit(permit, transfer))
        >>> builder = await client.collect_signatures(builder, relayer=relayer, maker=seller)
        >>> result = await client.submit(builder.build())
    """

    def __init__(self, chain: ChainClient, config: SettlerConfig):
        self.chain = chain
        self.config = ResolvedSettlerConfig.from_config(config)
        self._logger = logging.getLogger(self.__class__.__name__)

    async def domains(self) -> Tuple[EIP712Domain, EIP712Domain]:
        """Settlement and Permit2 domains for the connected chain.

        The chain id is read from the node on every call.
        """
        chain_id = await self.chain.get_chain_id()
        settlement = create_settlement_domain(
            self.config.settler_address,
            chain_id,
            name=self.config.domain_name,
            version=self.config.domain_version,
        )
        permit2 = create_permit2_domain(chain_id, self.config.permit2_address)
        return settlement, permit2

    async def builder(
        self,
        intent: IntentParams,
        escrow: EscrowParams,
        transfer: TransferActionKind,
    ) -> SettlementBuilder:
        settlement_domain, permit2_domain = await self.domains()
        return SettlementBuilder(
            intent=intent,
            escrow=escrow,
            transfer=transfer,
            settlement_domain=settlement_domain,
            permit2_domain=permit2_domain,
        )

    async def collect_signatures(
        self,
        builder: SettlementBuilder,
        relayer: TypedDataSigner,
        maker: Optional[TypedDataSigner] = None,
        payer: Optional[TypedDataSigner] = None,
    ) -> SettlementBuilder:
        """Request every signature the builder's flow needs.

        Seller intent: the maker signs the witness permit. Buyer intent: the
        maker signs the intent and the payer signs the permit. Bulk sell: the
        maker signs the intent.

        Raises:
            SignatureUnavailableError: If any signer fails
            InputValidationError: If a required signer is missing
        """
        if maker is None:
            raise InputValidationError(f"{builder.flow.value} flow needs a maker signer")
        if isinstance(builder.transfer, PlainPermit) and payer is None:
            raise InputValidationError("buyer_intent flow needs a payer signer")

        signatures = {
            "escrow_signature": await request_signature(
                relayer, builder.escrow_signing_request()
            )
        }

        if isinstance(builder.transfer, WitnessPermit):
            signatures["permit_signature"] = await request_signature(
                maker, builder.permit_signing_request()
            )
        elif isinstance(builder.transfer, PlainPermit):
            signatures["intent_signature"] = await request_signature(
                maker, builder.intent_signing_request()
            )
            signatures["permit_signature"] = await request_signature(
                payer, builder.permit_signing_request()
            )
        elif isinstance(builder.transfer, AllowanceTransfer):
            signatures["intent_signature"] = await request_signature(
                maker, builder.intent_signing_request()
            )
        self._logger.debug(f"Collected {sorted(signatures)} for {builder.flow.value}")
        return builder.with_signatures(**signatures)

    async def simulate(
        self, payload: ExecutionPayload, from_: Optional[str] = None
    ) -> Optional[SettlementError]:
        """Dry-run execute(); returns the decoded revert, or None if it would succeed."""
        try:
            await self.chain.simulate(self.config.settler_address, payload.calldata, from_)
        except ContractRevertError as e:
            error = decode_revert(e.data)
            self._logger.warning(f"Simulation reverted: {error.describe()}")
            return error
        return None

    async def estimate_gas(self, payload: ExecutionPayload, from_: Optional[str] = None) -> int:
        try:
            estimate: Optional[int] = await self.chain.estimate_gas(
                self.config.settler_address, payload.calldata, from_
            )
        except ChainClientError as e:
            self._logger.warning(
                f"Gas estimation failed, using fallback {self.config.fallback_gas}: {e}"
            )
            estimate = None
        return resolve_gas_limit(estimate, self.config.fallback_gas, self.config.max_gas)

    async def submit(
        self, payload: ExecutionPayload, from_: Optional[str] = None
    ) -> SubmissionResult:
        """Simulate, estimate, send and wait for the receipt.

        Returns:
            SubmissionResult with the decoded revert if simulation failed,
            otherwise with the receipt
        """
        error = await self.simulate(payload, from_)
        if error is not None:
            return SubmissionResult(error=error)

        gas = await self.estimate_gas(payload, from_)
        tx_hash = await self.chain.send_transaction(
            self.config.settler_address, payload.calldata, gas
        )
        self._logger.info(f"Submitted settlement {tx_hash} with gas {gas}")

        receipt = await self.chain.wait_for_receipt(
            tx_hash,
            timeout=self.config.receipt_timeout,
            poll_interval=self.config.poll_interval,
        )
        if receipt.succeeded:
            self._logger.info(f"Settlement {tx_hash} mined in block {receipt.block_number}")
        else:
            self._logger.warning(f"Settlement {tx_hash} reverted in block {receipt.block_number}")
        return SubmissionResult(receipt=receipt, gas=gas)

    def get_config(self) -> ResolvedSettlerConfig:
        """Get the settler configuration."""
        return self.config
