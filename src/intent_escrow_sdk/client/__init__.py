"""Chain-facing clients for the intent escrow SDK."""

from .chain import (
    ChainClient,
    JsonRpcChainClient,
    Receipt,
    resolve_gas_limit,
    DEFAULT_FALLBACK_GAS,
    DEFAULT_MAX_GAS,
)
from .settler import (
    SettlerClient,
    SettlerConfig,
    ResolvedSettlerConfig,
    SubmissionResult,
)

__all__ = [
    "ChainClient",
    "JsonRpcChainClient",
    "Receipt",
    "resolve_gas_limit",
    "DEFAULT_FALLBACK_GAS",
    "DEFAULT_MAX_GAS",
    "SettlerClient",
    "SettlerConfig",
    "ResolvedSettlerConfig",
    "SubmissionResult",
]
