"""Revert data decoding.

Settler reverts are decoded once, at the boundary, into a
:class:`~.errors.SettlementError`. ``ActionInvalid`` wraps the revert of the
failing action and is decoded recursively.
"""

from typing import Dict, Union

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from .actions import action_kind_for_selector
from .errors import ERROR_ARGUMENT_TYPES, SettlementError, SettlementErrorKind
from .utils import normalize_bytes


def error_signature(kind: SettlementErrorKind) -> str:
    return f"{kind.value}({','.join(ERROR_ARGUMENT_TYPES[kind])})"


ERROR_SELECTORS: Dict[bytes, SettlementErrorKind] = {
    keccak(text=error_signature(kind))[:4]: kind for kind in ERROR_ARGUMENT_TYPES
}

# Nested ActionInvalid levels decoded before the rest is reported as Unknown
MAX_REVERT_DEPTH = 8


def decode_revert(data: Union[str, bytes]) -> SettlementError:
    """Decode raw revert data.

    Args:
        data: Revert data as bytes or 0x-hex

    Returns:
        SettlementError; kind is ``Unknown`` when the selector is not
        recognised, the arguments do not decode, or ``ActionInvalid`` is
        nested deeper than ``MAX_REVERT_DEPTH``
    """
    return _decode(normalize_bytes(data, "revert data"), 0)


def _decode(raw: bytes, depth: int) -> SettlementError:
    error_selector = raw[:4]
    kind = ERROR_SELECTORS.get(error_selector) if len(raw) >= 4 else None
    if kind is None or depth > MAX_REVERT_DEPTH:
        return SettlementError(SettlementErrorKind.UNKNOWN, error_selector, raw=raw)

    try:
        args = tuple(decode(list(ERROR_ARGUMENT_TYPES[kind]), raw[4:]))
    except DecodingError:
        return SettlementError(SettlementErrorKind.UNKNOWN, error_selector, raw=raw)

    if kind is not SettlementErrorKind.ACTION_INVALID:
        return SettlementError(kind, error_selector, args=args, raw=raw)

    index, action_selector, inner_data = args
    action_kind = action_kind_for_selector(action_selector)
    return SettlementError(
        kind,
        error_selector,
        args=args,
        raw=raw,
        action_index=index,
        action_kind=action_kind.value if action_kind else None,
        inner=_decode(inner_data, depth + 1) if inner_data else None,
    )
