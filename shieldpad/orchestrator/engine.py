# shieldpad/orchestrator/engine.py
"""
ShieldPad Orchestrator: ActionOrchestrator

Single-flight state machine that turns user intents into protocol steps:

    validate -> encrypt (amount actions) -> submit -> await confirmation
             -> refresh affected state -> report result

Exactly one action may be RUNNING at a time. A second intent arriving while
the slot is taken is answered with REJECTED immediately; nothing is queued
and nothing is retried. The slot is released on every exit path.

Refresh after a successful action is fire-and-forget: one asyncio task per
affected TrackedValue. A failing read is logged and published as
REFRESH_FAILED on the event channel; it never changes the action's result.
When reads of the same value overlap, only the most recently scheduled one
is applied.

Usage:
    orchestrator = ActionOrchestrator(wallet, service, contracts, config)
    await orchestrator.refresh_all()

    result = await orchestrator.stake("10.5")
    if not result.ok:
        print(result.message)

    result = await orchestrator.decrypt_tracked(TrackedValue.STAKED)
    print(result.value)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from ..adapters.base import WalletAdapter, WalletEvent
from ..chain.contracts import (
    ContractRevertError,
    ContractSuite,
    TransactionHandle,
    TxReceipt,
)
from ..config import ShieldPadConfig
from ..core.amounts import AmountCodec
from ..core.cache import HandleCache
from ..core.errors import (
    ActionInFlightError,
    ContractRejectedError,
    NoIdentityError,
    NothingToDecryptError,
    ShieldPadError,
    TransactionFailedError,
)
from ..core.handles import shorten_handle
from ..fhe.decrypt import DecryptionSession
from ..fhe.inputs import EncryptedInputBuilder
from ..fhe.service import EncryptionService
from .actions import (
    AFFECTED_STATE,
    ALL_TRACKED,
    SUCCESS_MESSAGES,
    Action,
    ActionKind,
    ActionResult,
    ActionState,
    AmountAction,
    AuthorizeAction,
    ClaimAction,
    DecryptAction,
    PendingAction,
    Token,
    TrackedValue,
)


logger = logging.getLogger(__name__)


# Vault entry point per amount action
VAULT_ENTRY_POINTS: Dict[ActionKind, str] = {
    ActionKind.STAKE: "stake_czama",
    ActionKind.UNSTAKE: "unstake_czama",
    ActionKind.BORROW: "borrow_cusdt",
    ActionKind.REPAY: "repay_cusdt",
}


# =============================================================================
# Events
# =============================================================================

class OrchestratorEvent(Enum):
    """Diagnostic events published by the orchestrator."""
    ACTION_STARTED = "actionStarted"
    ACTION_COMPLETED = "actionCompleted"
    ACTION_FAILED = "actionFailed"
    ACTION_REJECTED = "actionRejected"
    VALUE_REFRESHED = "valueRefreshed"
    REFRESH_FAILED = "refreshFailed"


EventCallback = Callable[[OrchestratorEvent, Any], Awaitable[None]]


# =============================================================================
# Session State
# =============================================================================

@dataclass
class RefreshFailure:
    """A background read that did not complete."""
    value: TrackedValue
    error: str
    at: float


@dataclass
class SessionState:
    """All mutable session state; owned by one orchestrator."""
    cache: HandleCache = field(default_factory=HandleCache)
    pending: Optional[PendingAction] = None
    status_message: Optional[str] = None
    last_result: Optional[ActionResult] = None
    handles: Dict[TrackedValue, str] = field(default_factory=dict)
    claimed: Dict[TrackedValue, bool] = field(default_factory=dict)
    refresh_failures: List[RefreshFailure] = field(default_factory=list)

    @property
    def is_busy(self) -> bool:
        return self.pending is not None

    def is_pending(self, kind: ActionKind) -> bool:
        return self.pending is not None and self.pending.kind is kind

    def can_claim(self, token: Token) -> bool:
        flag = (
            TrackedValue.CLAIMED_CZAMA if token is Token.CZAMA
            else TrackedValue.CLAIMED_CUSDT
        )
        return not self.claimed.get(flag, False)

    def clear_chain_state(self) -> None:
        self.handles.clear()
        self.claimed.clear()


# =============================================================================
# ActionOrchestrator
# =============================================================================

class ActionOrchestrator:
    """
    Single-flight orchestrator for confidential token actions.

    Owns the SessionState (pending slot, last-read handles, claim flags and
    the decrypted-value cache) and is its only writer.
    """

    def __init__(
        self,
        wallet: WalletAdapter,
        service: Optional[EncryptionService],
        contracts: ContractSuite,
        config: Optional[ShieldPadConfig] = None,
        cache: Optional[HandleCache] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize orchestrator.

        Args:
            wallet: Identity and signing capability
            service: FHE relayer session (None until it is initialized)
            contracts: cZAMA, cUSDT and vault contracts
            config: Protocol configuration
            cache: Decrypted-value cache to reuse
            clock: Time source in seconds
        """
        self._wallet = wallet
        self._service = service
        self._contracts = contracts
        self._config = config or ShieldPadConfig()
        self._clock = clock

        self._codec = AmountCodec(self._config.token_decimals)
        self._builder = EncryptedInputBuilder(service)
        self._decryptor = DecryptionSession(
            service,
            codec=self._codec,
            duration_seconds=self._config.decrypt_duration_seconds,
            clock=clock,
        )

        self._state = SessionState(cache=cache or HandleCache())
        self._refresh_tasks: Set[asyncio.Task] = set()
        # Latest scheduled read per value; older reads that land late are dropped
        self._refresh_generation: Dict[TrackedValue, int] = {}
        self._event_handlers: Dict[OrchestratorEvent, List[EventCallback]] = {
            e: [] for e in OrchestratorEvent
        }

        wallet.on(WalletEvent.ACCOUNT_CHANGED, self._on_wallet_changed)
        wallet.on(WalletEvent.DISCONNECTED, self._on_wallet_changed)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state.is_busy

    @property
    def codec(self) -> AmountCodec:
        return self._codec

    @property
    def config(self) -> ShieldPadConfig:
        return self._config

    def contract_for(self, value: TrackedValue) -> str:
        """Address of the contract that owns a tracked value."""
        return getattr(self._contracts, value.role).address

    def decrypted_value(self, value: TrackedValue) -> Optional[str]:
        """Cached plaintext for the current handle of a tracked balance."""
        handle = self._state.handles.get(value)
        if not handle:
            return None
        return self._state.cache.get(self.contract_for(value), handle)

    # =========================================================================
    # Intents
    # =========================================================================

    async def claim(self, token: Token) -> ActionResult:
        return await self.run(ClaimAction(token))

    async def authorize(self) -> ActionResult:
        return await self.run(AuthorizeAction())

    async def stake(self, amount: str) -> ActionResult:
        return await self.run(AmountAction(ActionKind.STAKE, amount))

    async def unstake(self, amount: str) -> ActionResult:
        return await self.run(AmountAction(ActionKind.UNSTAKE, amount))

    async def borrow(self, amount: str) -> ActionResult:
        return await self.run(AmountAction(ActionKind.BORROW, amount))

    async def repay(self, amount: str) -> ActionResult:
        return await self.run(AmountAction(ActionKind.REPAY, amount))

    async def decrypt(self, handle: Optional[str], contract: str) -> ActionResult:
        return await self.run(DecryptAction(handle, contract))

    async def decrypt_tracked(self, value: TrackedValue) -> ActionResult:
        """Decrypt the last-read handle of a tracked balance."""
        if value.is_flag:
            raise ValueError(f"{value.label} is not an encrypted balance")
        return await self.run(
            DecryptAction(self._state.handles.get(value), self.contract_for(value))
        )

    # =========================================================================
    # State Machine
    # =========================================================================

    async def run(self, action: Action) -> ActionResult:
        """
        Run one intent through the single-flight slot.

        Never raises for protocol failures: every error is reported in the
        returned ActionResult and mirrored into state.status_message.
        """
        kind = action.kind

        pending = self._state.pending
        if pending is not None:
            error = ActionInFlightError(f"{pending.kind.value} is still in progress.")
            result = ActionResult(kind, ActionState.REJECTED, error.message, error)
            logger.info("rejected %s: %s running", kind.value, pending.kind.value)
            await self._emit(OrchestratorEvent.ACTION_REJECTED, result)
            return result

        user = self._wallet.address
        if not user:
            error = NoIdentityError()
            result = ActionResult(kind, ActionState.FAILED, error.message, error)
            self._finish(result)
            await self._emit(OrchestratorEvent.ACTION_FAILED, result)
            return result

        pending = PendingAction(action, started_at=self._clock())
        self._state.pending = pending
        self._state.status_message = None
        logger.info("action %s started", kind.value)
        await self._emit(OrchestratorEvent.ACTION_STARTED, pending)

        try:
            result = await self._dispatch(action, user)
            pending.state = ActionState.COMPLETED
        except Exception as e:
            error = e if isinstance(e, ShieldPadError) else ShieldPadError(str(e) or None)
            pending.state = ActionState.FAILED
            result = ActionResult(kind, ActionState.FAILED, error.message, error)
            logger.warning("action %s failed (%s): %s", kind.value, error.kind.value, error)
        finally:
            self._state.pending = None

        self._finish(result)
        if result.ok:
            logger.info("action %s completed", kind.value)
            await self._emit(OrchestratorEvent.ACTION_COMPLETED, result)
            self.refresh(AFFECTED_STATE[kind])
        else:
            await self._emit(OrchestratorEvent.ACTION_FAILED, result)
        return result

    def _finish(self, result: ActionResult) -> None:
        self._state.status_message = result.message
        self._state.last_result = result

    async def _dispatch(self, action: Action, user: str) -> ActionResult:
        if isinstance(action, ClaimAction):
            return await self._claim(action, user)
        if isinstance(action, AuthorizeAction):
            return await self._authorize(user)
        if isinstance(action, AmountAction):
            return await self._amount(action, user)
        if isinstance(action, DecryptAction):
            return await self._decrypt(action, user)
        raise TypeError(f"Unhandled action: {action!r}")

    # =========================================================================
    # Handlers
    # =========================================================================

    async def _claim(self, action: ClaimAction, user: str) -> ActionResult:
        vault = self._contracts.vault.connect(user)
        if action.token is Token.CZAMA:
            receipt = await self._submit(vault.claim_czama)
        else:
            receipt = await self._submit(vault.claim_cusdt)
        return self._completed(action.kind, [receipt])

    async def _authorize(self, user: str) -> ActionResult:
        expiry = int(self._clock()) + self._config.operator_grant_seconds
        operator = self._contracts.vault.address
        receipts = []
        for token in (self._contracts.czama, self._contracts.cusdt):
            bound = token.connect(user)
            receipts.append(
                await self._submit(lambda: bound.set_operator(operator, expiry))
            )
        return self._completed(ActionKind.AUTHORIZE, receipts)

    async def _amount(self, action: AmountAction, user: str) -> ActionResult:
        units = self._codec.parse(action.amount)
        vault = self._contracts.vault.connect(user)

        encrypted = await self._builder.build(vault.address, user, units)

        entry = getattr(vault, VAULT_ENTRY_POINTS[action.kind])
        receipt = await self._submit(
            lambda: entry(encrypted.handle, encrypted.input_proof)
        )
        return self._completed(action.kind, [receipt])

    async def _decrypt(self, action: DecryptAction, user: str) -> ActionResult:
        if not action.handle:
            raise NothingToDecryptError()

        cache = self._state.cache
        value = cache.get(action.contract, action.handle)
        if value is None:
            value = await self._decryptor.decrypt(
                action.handle, action.contract, self._wallet, user
            )
            cache.put(action.contract, action.handle, value)
        else:
            logger.debug("cache hit for %s", shorten_handle(action.handle))

        return ActionResult(
            kind=ActionKind.DECRYPT,
            state=ActionState.COMPLETED,
            message=SUCCESS_MESSAGES[ActionKind.DECRYPT].format(value=value),
            value=value,
        )

    async def _submit(
        self,
        send: Callable[[], Awaitable[TransactionHandle]],
    ) -> TxReceipt:
        """Send a transaction and wait for its confirmation."""
        try:
            tx = await send()
            logger.debug("submitted %s", tx.hash)
            return await tx.wait()
        except ContractRevertError as e:
            raise ContractRejectedError(e.reason)
        except ShieldPadError:
            raise
        except Exception as e:
            raise TransactionFailedError(str(e) or None)

    def _completed(self, kind: ActionKind, receipts: List[TxReceipt]) -> ActionResult:
        return ActionResult(
            kind=kind,
            state=ActionState.COMPLETED,
            message=SUCCESS_MESSAGES[kind],
            tx_hashes=[r.tx_hash for r in receipts],
        )

    # =========================================================================
    # Refresh
    # =========================================================================

    def refresh(self, values: Iterable[TrackedValue] = ALL_TRACKED) -> int:
        """
        Schedule background re-reads for the current user.

        Returns:
            Number of reads scheduled
        """
        user = self._wallet.address
        if not user:
            return 0

        loop = asyncio.get_running_loop()
        count = 0
        for value in values:
            generation = self._refresh_generation.get(value, 0) + 1
            self._refresh_generation[value] = generation
            task = loop.create_task(self._refresh_value(value, user, generation))
            self._refresh_tasks.add(task)
            task.add_done_callback(self._refresh_tasks.discard)
            count += 1
        return count

    async def refresh_all(self) -> None:
        """Re-read every tracked value and wait for the reads to settle."""
        self.refresh(ALL_TRACKED)
        await self.wait_for_refresh()

    async def wait_for_refresh(self) -> None:
        """Wait for all scheduled background reads."""
        while True:
            pending = [t for t in self._refresh_tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def _refresh_value(self, value: TrackedValue, user: str, generation: int) -> None:
        contract = getattr(self._contracts, value.role)
        try:
            result = await getattr(contract, value.reader)(user)
        except Exception as e:
            failure = RefreshFailure(value=value, error=str(e), at=self._clock())
            self._state.refresh_failures.append(failure)
            logger.warning("refresh of %s failed: %s", value.label, e)
            await self._emit(OrchestratorEvent.REFRESH_FAILED, failure)
            return

        if self._wallet.address != user:
            logger.debug("dropping %s read for previous account", value.label)
            return

        if self._refresh_generation.get(value) != generation:
            logger.debug("dropping superseded %s read", value.label)
            return

        if value.is_flag:
            self._state.claimed[value] = bool(result)
        else:
            self._state.handles[value] = result
        await self._emit(OrchestratorEvent.VALUE_REFRESHED, (value, result))

    async def _on_wallet_changed(self, event: WalletEvent, data: Any) -> None:
        self._state.clear_chain_state()

    # =========================================================================
    # Event Handling
    # =========================================================================

    def on(self, event: OrchestratorEvent, callback: EventCallback) -> None:
        """Register event handler."""
        self._event_handlers[event].append(callback)

    def off(self, event: OrchestratorEvent, callback: EventCallback) -> None:
        """Unregister event handler."""
        if callback in self._event_handlers[event]:
            self._event_handlers[event].remove(callback)

    async def _emit(self, event: OrchestratorEvent, data: Any = None) -> None:
        """Emit event to all handlers."""
        for handler in self._event_handlers[event]:
            try:
                await handler(event, data)
            except Exception as e:
                logger.warning("event handler failed (%s): %s", event.value, e)
