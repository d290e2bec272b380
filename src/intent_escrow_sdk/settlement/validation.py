"""Preflight alignment checks.

The settler rejects misaligned inputs with opaque reverts (InvalidToken,
InvalidAmount, InvalidSpender, SignatureExpired). These checks surface the
same problems locally, before anything is signed or simulated.
"""

import time
from dataclasses import dataclass
from typing import List, Optional, Union

from .actions import TransferActionKind
from .errors import SettlementErrorKind
from .types import EscrowParams, IntentParams, PayeeAccountEscrowParams
from .utils import normalize_address


@dataclass(frozen=True)
class PreflightIssue:
    """One misalignment, tagged with the revert it would cause."""

    kind: SettlementErrorKind
    message: str


def check_alignment(
    intent: IntentParams,
    escrow: Union[EscrowParams, PayeeAccountEscrowParams],
    transfer: Optional[TransferActionKind] = None,
    settler_address: Optional[str] = None,
    now: Optional[int] = None,
) -> List[PreflightIssue]:
    """Compare intent, escrow and transfer against each other.

    Args:
        intent: Maker intent
        escrow: Relayer escrow
        transfer: Transfer variant, if the flow moves tokens
        settler_address: Expected transfer recipient
        now: Unix timestamp to check expiries against (defaults to wall clock)

    Returns:
        List of issues, empty when everything lines up
    """
    if now is None:
        now = int(time.time())
    issues: List[PreflightIssue] = []

    if intent.range.min > intent.range.max:
        issues.append(PreflightIssue(
            SettlementErrorKind.INVALID_AMOUNT,
            f"intent range min {intent.range.min} exceeds max {intent.range.max}",
        ))
    if escrow.token != intent.token:
        issues.append(PreflightIssue(
            SettlementErrorKind.INVALID_TOKEN,
            f"escrow token {escrow.token} differs from intent token {intent.token}",
        ))
    if not intent.range.min <= escrow.volume <= intent.range.max:
        issues.append(PreflightIssue(
            SettlementErrorKind.INVALID_AMOUNT,
            f"escrow volume {escrow.volume} outside intent range "
            f"[{intent.range.min}, {intent.range.max}]",
        ))
    if intent.expiry_time <= now:
        issues.append(PreflightIssue(
            SettlementErrorKind.SIGNATURE_EXPIRED,
            f"intent expired at {intent.expiry_time}",
        ))

    if transfer is None:
        return issues

    if transfer.token != intent.token:
        issues.append(PreflightIssue(
            SettlementErrorKind.INVALID_TOKEN,
            f"transfer token {transfer.token} differs from intent token {intent.token}",
        ))
    if transfer.amount != escrow.volume:
        issues.append(PreflightIssue(
            SettlementErrorKind.INVALID_AMOUNT,
            f"transfer amount {transfer.amount} differs from escrow volume {escrow.volume}",
        ))
    if transfer.token_permissions().amount < transfer.amount:
        issues.append(PreflightIssue(
            SettlementErrorKind.INVALID_AMOUNT,
            f"permitted amount {transfer.token_permissions().amount} below "
            f"transfer amount {transfer.amount}",
        ))
    if settler_address is not None:
        settler = normalize_address(settler_address, "settler address")
        if transfer.recipient != settler:
            issues.append(PreflightIssue(
                SettlementErrorKind.INVALID_SPENDER,
                f"transfer recipient {transfer.recipient} is not the settler {settler}",
            ))
    if transfer.deadline is not None and transfer.deadline <= now:
        issues.append(PreflightIssue(
            SettlementErrorKind.SIGNATURE_EXPIRED,
            f"permit deadline {transfer.deadline} has passed",
        ))
    return issues
