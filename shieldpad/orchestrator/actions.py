# shieldpad/orchestrator/actions.py
"""
ShieldPad Orchestrator: Action Model

User intents as tagged variants, their lifecycle states, and the table of
contract state each kind of action affects.

Intents:
    ClaimAction(token)            claim-czama / claim-cusdt
    AuthorizeAction()             vault operator grant on both tokens
    AmountAction(kind, amount)    stake / unstake / borrow / repay
    DecryptAction(handle, contract)

Lifecycle:
    IDLE -> RUNNING(kind) -> COMPLETED | FAILED -> IDLE
    REJECTED is reported to the caller of an intent refused by the
    single-flight slot; it never occupies the slot.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..core.cache import HandleCache
from ..core.errors import ErrorKind, ShieldPadError


# =============================================================================
# Enums
# =============================================================================

class ActionKind(Enum):
    """Kinds of user intent."""
    CLAIM_CZAMA = "claim-czama"
    CLAIM_CUSDT = "claim-cusdt"
    AUTHORIZE = "authorize"
    STAKE = "stake"
    UNSTAKE = "unstake"
    BORROW = "borrow"
    REPAY = "repay"
    DECRYPT = "decrypt"


AMOUNT_KINDS = frozenset({
    ActionKind.STAKE,
    ActionKind.UNSTAKE,
    ActionKind.BORROW,
    ActionKind.REPAY,
})


class ActionState(Enum):
    """Lifecycle state of an action."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


class Token(Enum):
    """Claimable confidential tokens."""
    CZAMA = "cZAMA"
    CUSDT = "cUSDT"


class TrackedValue(Enum):
    """
    Read-only contract values the session keeps current.

    Each member is (contract role, reader method); the role is one of the
    ContractSuite attributes.
    """
    CZAMA_BALANCE = ("czama", "confidential_balance_of")
    CUSDT_BALANCE = ("cusdt", "confidential_balance_of")
    STAKED = ("vault", "get_staked_balance")
    BORROWED = ("vault", "get_borrowed_balance")
    CLAIMED_CZAMA = ("vault", "has_claimed_czama")
    CLAIMED_CUSDT = ("vault", "has_claimed_cusdt")

    def __init__(self, role: str, reader: str):
        self.role = role
        self.reader = reader

    @property
    def is_flag(self) -> bool:
        return self.reader.startswith("has_claimed")

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    TrackedValue.CZAMA_BALANCE: "cZAMA wallet",
    TrackedValue.CUSDT_BALANCE: "cUSDT wallet",
    TrackedValue.STAKED: "Staked cZAMA",
    TrackedValue.BORROWED: "Borrowed cUSDT",
    TrackedValue.CLAIMED_CZAMA: "cZAMA claimed",
    TrackedValue.CLAIMED_CUSDT: "cUSDT claimed",
}

ALL_TRACKED: Tuple[TrackedValue, ...] = tuple(TrackedValue)


# =============================================================================
# Affected State / Messages
# =============================================================================

AFFECTED_STATE: Dict[ActionKind, Tuple[TrackedValue, ...]] = {
    ActionKind.CLAIM_CZAMA: ALL_TRACKED,
    ActionKind.CLAIM_CUSDT: ALL_TRACKED,
    ActionKind.AUTHORIZE: ALL_TRACKED,
    ActionKind.STAKE: (TrackedValue.CZAMA_BALANCE, TrackedValue.STAKED),
    ActionKind.UNSTAKE: (TrackedValue.CZAMA_BALANCE, TrackedValue.STAKED),
    ActionKind.BORROW: (TrackedValue.CUSDT_BALANCE, TrackedValue.BORROWED),
    ActionKind.REPAY: (TrackedValue.CUSDT_BALANCE, TrackedValue.BORROWED),
    ActionKind.DECRYPT: (),
}

SUCCESS_MESSAGES: Dict[ActionKind, str] = {
    ActionKind.CLAIM_CZAMA: "Claimed cZAMA successfully.",
    ActionKind.CLAIM_CUSDT: "Claimed cUSDT successfully.",
    ActionKind.AUTHORIZE: "Protocol permissions granted for both tokens.",
    ActionKind.STAKE: "Staked cZAMA successfully.",
    ActionKind.UNSTAKE: "Unstaked cZAMA.",
    ActionKind.BORROW: "Borrowed cUSDT successfully.",
    ActionKind.REPAY: "Loan position updated.",
    ActionKind.DECRYPT: "Decrypted value: {value}",
}


# =============================================================================
# Intents
# =============================================================================

class Action:
    """Base class of all intents."""

    @property
    def kind(self) -> ActionKind:
        raise NotImplementedError

    @property
    def target_key(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class ClaimAction(Action):
    token: Token

    @property
    def kind(self) -> ActionKind:
        if self.token is Token.CZAMA:
            return ActionKind.CLAIM_CZAMA
        return ActionKind.CLAIM_CUSDT


@dataclass(frozen=True)
class AuthorizeAction(Action):

    @property
    def kind(self) -> ActionKind:
        return ActionKind.AUTHORIZE


@dataclass(frozen=True)
class AmountAction(Action):
    operation: ActionKind
    amount: str

    def __post_init__(self):
        if self.operation not in AMOUNT_KINDS:
            raise ValueError(f"{self.operation.value} does not take an amount")

    @property
    def kind(self) -> ActionKind:
        return self.operation


@dataclass(frozen=True)
class DecryptAction(Action):
    handle: Optional[str]
    contract: str

    @property
    def kind(self) -> ActionKind:
        return ActionKind.DECRYPT

    @property
    def target_key(self) -> Optional[str]:
        if not self.handle:
            return None
        return HandleCache.key(self.contract, self.handle)


# =============================================================================
# Pending Action / Result
# =============================================================================

@dataclass
class PendingAction:
    """The single action currently holding the slot."""
    action: Action
    state: ActionState = ActionState.RUNNING
    started_at: float = field(default_factory=time.time)

    @property
    def kind(self) -> ActionKind:
        return self.action.kind

    @property
    def target_key(self) -> Optional[str]:
        return self.action.target_key


@dataclass
class ActionResult:
    """Outcome reported for one intent."""
    kind: ActionKind
    state: ActionState
    message: str
    error: Optional[ShieldPadError] = None
    value: Optional[str] = None
    tx_hashes: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is ActionState.COMPLETED

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None
