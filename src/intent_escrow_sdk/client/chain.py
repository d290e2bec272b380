"""Chain access for settlement submission.

:class:`ChainClient` is the protocol the settler client talks to;
:class:`JsonRpcChainClient` implements it over Ethereum JSON-RPC with httpx
and signs transactions locally with eth_account.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from eth_abi import decode, encode
from eth_account import Account

from ..settlement.actions import selector
from ..settlement.errors import ChainClientError, ContractRevertError
from ..settlement.utils import normalize_address, normalize_bytes

logger = logging.getLogger(__name__)

# Used when eth_estimateGas fails
DEFAULT_FALLBACK_GAS = 10_000_000

# Per-transaction gas ceiling enforced by the node
DEFAULT_MAX_GAS = 16_777_216

DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 2.0


@dataclass(frozen=True)
class Receipt:
    """Mined transaction receipt."""

    tx_hash: str
    block_number: int
    status: int
    """1 on success, 0 on revert."""

    gas_used: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class ChainClient(Protocol):
    """Protocol for the chain access the settler client needs."""

    async def get_chain_id(self) -> int:
        ...

    async def estimate_gas(self, to: str, data: bytes, from_: Optional[str] = None) -> int:
        ...

    async def simulate(self, to: str, data: bytes, from_: Optional[str] = None) -> bytes:
        """Execute a call without sending it.

        Raises:
            ContractRevertError: If the call reverts; carries the revert data
        """
        ...

    async def send_transaction(self, to: str, data: bytes, gas: int) -> str:
        ...

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> Receipt:
        ...

    async def read_contract(
        self,
        address: str,
        signature: str,
        arg_types: Sequence[str],
        args: Sequence[Any],
        return_types: Optional[Sequence[str]] = None,
    ) -> Any:
        ...


def resolve_gas_limit(
    estimate: Optional[int],
    fallback: int = DEFAULT_FALLBACK_GAS,
    cap: int = DEFAULT_MAX_GAS,
) -> int:
    """Apply the gas policy: fall back when estimation failed, then cap.

    Args:
        estimate: Estimated gas, or None if estimation failed
        fallback: Gas to use without an estimate
        cap: Upper bound for any gas value

    Returns:
        Gas limit to submit with
    """
    gas = fallback if estimate is None else estimate
    return min(gas, cap)


def _revert_data(error: Dict[str, Any]) -> bytes:
    data = error.get("data")
    if isinstance(data, dict):
        data = data.get("data") or data.get("result")
    if isinstance(data, str) and data.startswith("0x"):
        try:
            return normalize_bytes(data, "revert data")
        except ValueError:
            return b""
    return b""


class JsonRpcChainClient:
    """ChainClient over Ethereum JSON-RPC.

    Example:
        >>> async with JsonRpcChainClient(rpc_url, private_key=key) as chain:
        ...     chain_id = await chain.get_chain_id()
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.rpc_url = rpc_url
        self._private_key = private_key
        self._address = Account.from_key(private_key).address if private_key else None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._request_id = 0
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def address(self) -> Optional[str]:
        """Sender address derived from the private key."""
        return self._address

    async def __aenter__(self) -> "JsonRpcChainClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        self._request_id += 1
        request = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }
        try:
            response = await self._http_client.post(
                self.rpc_url,
                headers={"Content-Type": "application/json"},
                json=request,
            )
        except httpx.HTTPError as e:
            raise ChainClientError(f"RPC {method} unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            raise ChainClientError(
                f"RPC {method} failed: {response.status_code} {response.text}"
            )

        if isinstance(body, dict) and "error" in body:
            error = body["error"] or {}
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            data = _revert_data(error) if isinstance(error, dict) else b""
            if data or "revert" in message.lower():
                raise ContractRevertError(f"RPC {method} reverted: {message}", data)
            raise ChainClientError(f"RPC {method} error: {message}")

        if not response.is_success:
            raise ChainClientError(
                f"RPC {method} failed: {response.status_code} {response.text}"
            )
        if not isinstance(body, dict) or "result" not in body:
            raise ChainClientError(f"RPC {method} returned no result")
        return body["result"]

    def _call_object(self, to: str, data: bytes, from_: Optional[str]) -> Dict[str, str]:
        call = {"to": normalize_address(to, "to"), "data": "0x" + bytes(data).hex()}
        sender = from_ or self._address
        if sender:
            call["from"] = normalize_address(sender, "from")
        return call

    async def get_chain_id(self) -> int:
        return int(await self._rpc("eth_chainId", []), 16)

    async def estimate_gas(self, to: str, data: bytes, from_: Optional[str] = None) -> int:
        return int(await self._rpc("eth_estimateGas", [self._call_object(to, data, from_)]), 16)

    async def simulate(self, to: str, data: bytes, from_: Optional[str] = None) -> bytes:
        result = await self._rpc("eth_call", [self._call_object(to, data, from_), "latest"])
        return normalize_bytes(result or "0x", "call result")

    async def send_transaction(self, to: str, data: bytes, gas: int) -> str:
        """Sign locally and broadcast a legacy transaction.

        Raises:
            ChainClientError: If no private key is configured or the node
                rejects the transaction
        """
        if not self._private_key:
            raise ChainClientError("A private key is required to send transactions")

        nonce = int(await self._rpc("eth_getTransactionCount", [self._address, "pending"]), 16)
        gas_price = int(await self._rpc("eth_gasPrice", []), 16)
        chain_id = await self.get_chain_id()

        tx = {
            "to": normalize_address(to, "to"),
            "data": "0x" + bytes(data).hex(),
            "gas": gas,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": chain_id,
            "value": 0,
        }
        signed = Account.sign_transaction(tx, self._private_key)
        tx_hash = await self._rpc(
            "eth_sendRawTransaction", ["0x" + bytes(signed.raw_transaction).hex()]
        )
        self._logger.info(f"Sent transaction {tx_hash} (nonce={nonce}, gas={gas})")
        return tx_hash

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> Receipt:
        """Poll for a receipt until it appears or the timeout expires.

        Raises:
            ChainClientError: If no receipt arrives within timeout seconds
        """
        deadline = time.monotonic() + timeout
        while True:
            result = await self._rpc("eth_getTransactionReceipt", [tx_hash])
            if result:
                return Receipt(
                    tx_hash=tx_hash,
                    block_number=int(result["blockNumber"], 16),
                    status=int(result["status"], 16),
                    gas_used=int(result.get("gasUsed", "0x0"), 16),
                )
            if time.monotonic() >= deadline:
                raise ChainClientError(
                    f"Timed out after {timeout}s waiting for receipt of {tx_hash}"
                )
            await asyncio.sleep(poll_interval)

    async def read_contract(
        self,
        address: str,
        signature: str,
        arg_types: Sequence[str],
        args: Sequence[Any],
        return_types: Optional[Sequence[str]] = None,
    ) -> Any:
        """eth_call a view function.

        Args:
            address: Contract address
            signature: Canonical signature (e.g., "allowance(address,address,address)")
            arg_types: ABI types of the arguments
            args: Argument values
            return_types: ABI types to decode the result with; raw bytes if omitted

        Returns:
            Decoded tuple, or raw return data
        """
        data = selector(signature) + encode(list(arg_types), list(args))
        result = await self.simulate(address, data)
        if return_types is None:
            return result
        return decode(list(return_types), result)
