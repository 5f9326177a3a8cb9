# shieldpad/orchestrator/__init__.py
"""
ShieldPad Orchestrator: single-flight action state machine.
"""

from .actions import (
    ActionKind,
    ActionState,
    Token,
    TrackedValue,
    Action,
    ClaimAction,
    AuthorizeAction,
    AmountAction,
    DecryptAction,
    PendingAction,
    ActionResult,
    AFFECTED_STATE,
    ALL_TRACKED,
    SUCCESS_MESSAGES,
)
from .engine import (
    ActionOrchestrator,
    SessionState,
    RefreshFailure,
    OrchestratorEvent,
    VAULT_ENTRY_POINTS,
)

__all__ = [
    "ActionKind",
    "ActionState",
    "Token",
    "TrackedValue",
    "Action",
    "ClaimAction",
    "AuthorizeAction",
    "AmountAction",
    "DecryptAction",
    "PendingAction",
    "ActionResult",
    "AFFECTED_STATE",
    "ALL_TRACKED",
    "SUCCESS_MESSAGES",
    "ActionOrchestrator",
    "SessionState",
    "RefreshFailure",
    "OrchestratorEvent",
    "VAULT_ENTRY_POINTS",
]
