# tests/test_orchestrator.py
"""ActionOrchestrator state machine tests."""

import asyncio

import pytest

from shieldpad.adapters import MockWalletAdapter
from shieldpad.chain import ContractSuite
from shieldpad.core import ErrorKind, ZERO_HANDLE
from shieldpad.fhe import MockEncryptionService
from shieldpad.orchestrator import (
    ActionKind,
    ActionOrchestrator,
    ActionState,
    OrchestratorEvent,
    Token,
    TrackedValue,
)

from conftest import USER, OTHER_USER, calls_named


class GatedWallet(MockWalletAdapter):
    """Holds every signature request until the gate opens."""

    gate = None
    entered = None

    async def sign_typed_data(self, domain, types, value):
        self.entered.set()
        await self.gate.wait()
        return await super().sign_typed_data(domain, types, value)


class EventRecorder:

    def __init__(self, orchestrator):
        self.events = []
        for event in OrchestratorEvent:
            orchestrator.on(event, self._record)

    async def _record(self, event, data):
        self.events.append((event, data))

    def of(self, event):
        return [data for e, data in self.events if e is event]


async def _claimed(orchestrator, wallet):
    await wallet.connect()
    result = await orchestrator.claim(Token.CZAMA)
    assert result.ok
    await orchestrator.wait_for_refresh()
    return result


# -----------------------------------------------------------------------------
# Identity / validation
# -----------------------------------------------------------------------------

def test_action_without_identity_fails_without_starting(orchestrator, service):
    recorder = EventRecorder(orchestrator)

    result = asyncio.run(orchestrator.claim(Token.CZAMA))

    assert result.state is ActionState.FAILED
    assert result.error_kind is ErrorKind.NO_IDENTITY
    assert result.message == "Connect a wallet first."
    assert orchestrator.state.status_message == "Connect a wallet first."
    assert recorder.of(OrchestratorEvent.ACTION_STARTED) == []
    assert len(recorder.of(OrchestratorEvent.ACTION_FAILED)) == 1
    assert not orchestrator.is_busy


@pytest.mark.parametrize("amount", ["", "abc", "0", "-5", "1.0000001"])
def test_invalid_amount_never_reaches_encryption(orchestrator, wallet, service, chain, amount):
    async def scenario():
        await wallet.connect()
        return await orchestrator.stake(amount)

    result = asyncio.run(scenario())

    assert result.state is ActionState.FAILED
    assert result.error_kind is ErrorKind.INVALID_AMOUNT
    assert service.calls == []
    assert chain.transactions == 0
    assert not orchestrator.is_busy


def test_encryption_unavailable(orchestrator, wallet, service, chain):
    service.set_ready(False)

    async def scenario():
        await wallet.connect()
        return await orchestrator.borrow("1")

    result = asyncio.run(scenario())

    assert result.error_kind is ErrorKind.ENCRYPTION_UNAVAILABLE
    assert result.message == "Encryption service not ready yet."
    assert chain.transactions == 0


# -----------------------------------------------------------------------------
# Single flight
# -----------------------------------------------------------------------------

def test_second_intent_is_rejected_while_busy(config, service, contracts, clock):
    wallet = GatedWallet(chain_id=config.chain_id, address=USER)
    orchestrator = ActionOrchestrator(wallet, service, contracts, config, clock=clock)
    recorder = EventRecorder(orchestrator)

    async def scenario():
        wallet.gate = asyncio.Event()
        wallet.entered = asyncio.Event()
        await _claimed(orchestrator, wallet)

        first = asyncio.ensure_future(
            orchestrator.decrypt_tracked(TrackedValue.CZAMA_BALANCE)
        )
        await wallet.entered.wait()

        pending = orchestrator.state.pending
        assert orchestrator.is_busy
        assert orchestrator.state.is_pending(ActionKind.DECRYPT)

        rejected = await orchestrator.stake("1")
        assert rejected.state is ActionState.REJECTED
        assert rejected.error_kind is ErrorKind.ACTION_IN_FLIGHT
        assert orchestrator.state.pending is pending
        assert pending.state is ActionState.RUNNING
        assert orchestrator.state.status_message is None
        assert calls_named(service, "create_encrypted_input") == []

        wallet.gate.set()
        done = await first
        assert done.ok
        assert done.value == "1000"
        assert not orchestrator.is_busy

        follow_up = await orchestrator.authorize()
        assert follow_up.ok
        await orchestrator.wait_for_refresh()

    asyncio.run(scenario())

    assert len(recorder.of(OrchestratorEvent.ACTION_REJECTED)) == 1
    assert [r.kind for r in recorder.of(OrchestratorEvent.ACTION_COMPLETED)] == [
        ActionKind.CLAIM_CZAMA,
        ActionKind.DECRYPT,
        ActionKind.AUTHORIZE,
    ]


def test_slot_is_released_after_failure(orchestrator, wallet):
    async def scenario():
        await _claimed(orchestrator, wallet)
        again = await orchestrator.claim(Token.CZAMA)
        assert not orchestrator.is_busy
        other = await orchestrator.claim(Token.CUSDT)
        await orchestrator.wait_for_refresh()
        return again, other

    again, other = asyncio.run(scenario())

    assert again.error_kind is ErrorKind.CONTRACT_REJECTED
    assert again.message == "cZAMA already claimed"
    assert other.ok


# -----------------------------------------------------------------------------
# Chain errors
# -----------------------------------------------------------------------------

def test_confirmation_failure_is_reported_verbatim(orchestrator, wallet, chain):
    chain.fail_next_confirmation = "execution reverted: nonce too low"

    async def scenario():
        await wallet.connect()
        return await orchestrator.claim(Token.CUSDT)

    result = asyncio.run(scenario())

    assert result.error_kind is ErrorKind.TRANSACTION_FAILED
    assert result.message == "execution reverted: nonce too low"
    assert orchestrator.state.status_message == result.message
    assert orchestrator.state.last_result is result


def test_stake_without_authorization_is_rejected_by_vault(orchestrator, wallet, service):
    async def scenario():
        await _claimed(orchestrator, wallet)
        return await orchestrator.stake("10")

    result = asyncio.run(scenario())

    assert result.error_kind is ErrorKind.CONTRACT_REJECTED
    assert "not an operator" in result.message
    assert len(calls_named(service, "create_encrypted_input")) == 1


def test_unexpected_error_is_classified(config, contracts, clock):
    class CrashingService(MockEncryptionService):
        def generate_keypair(self):
            raise RuntimeError("relayer crashed")

    service = CrashingService(chain_id=config.chain_id, clock=clock)
    wallet = MockWalletAdapter(chain_id=config.chain_id, address=USER)
    orchestrator = ActionOrchestrator(wallet, service, contracts, config, clock=clock)

    async def scenario():
        await wallet.connect()
        return await orchestrator.decrypt("0x" + "ab" * 32, config.czama_address)

    result = asyncio.run(scenario())

    assert result.state is ActionState.FAILED
    assert result.error_kind is ErrorKind.UNEXPECTED
    assert result.message == "relayer crashed"


# -----------------------------------------------------------------------------
# Authorize
# -----------------------------------------------------------------------------

def test_authorize_grants_vault_on_both_tokens(orchestrator, wallet, contracts, config):
    async def scenario():
        await wallet.connect()
        result = await orchestrator.authorize()
        await orchestrator.wait_for_refresh()
        return result

    result = asyncio.run(scenario())

    assert result.ok
    assert result.message == "Protocol permissions granted for both tokens."
    assert len(result.tx_hashes) == 2
    assert contracts.czama.is_operator(USER, config.vault_address)
    assert contracts.cusdt.is_operator(USER, config.vault_address)


def test_operator_grant_lapses(orchestrator, wallet, contracts, config, clock):
    async def scenario():
        await wallet.connect()
        await orchestrator.authorize()
        await orchestrator.wait_for_refresh()

    asyncio.run(scenario())
    clock.advance(config.operator_grant_seconds + 1)
    assert not contracts.czama.is_operator(USER, config.vault_address)


# -----------------------------------------------------------------------------
# Refresh
# -----------------------------------------------------------------------------

def test_refresh_reads_every_tracked_value(orchestrator, wallet):
    async def scenario():
        await _claimed(orchestrator, wallet)

    asyncio.run(scenario())

    state = orchestrator.state
    assert state.claimed[TrackedValue.CLAIMED_CZAMA] is True
    assert state.claimed[TrackedValue.CLAIMED_CUSDT] is False
    assert not state.can_claim(Token.CZAMA)
    assert state.can_claim(Token.CUSDT)
    assert state.handles[TrackedValue.CZAMA_BALANCE] != ZERO_HANDLE
    assert state.handles[TrackedValue.STAKED] == ZERO_HANDLE


def test_refresh_failure_is_observable_but_action_succeeds(orchestrator, wallet, chain):
    recorder = EventRecorder(orchestrator)
    chain.fail_reads = "rpc timeout"

    async def scenario():
        await wallet.connect()
        result = await orchestrator.authorize()
        await orchestrator.wait_for_refresh()
        return result

    result = asyncio.run(scenario())

    assert result.ok
    assert orchestrator.state.status_message == result.message
    failures = orchestrator.state.refresh_failures
    assert len(failures) == len(TrackedValue)
    assert {f.error for f in failures} == {"rpc timeout"}
    assert len(recorder.of(OrchestratorEvent.REFRESH_FAILED)) == len(TrackedValue)


def test_amount_action_refreshes_only_affected_values(orchestrator, wallet):
    recorder = EventRecorder(orchestrator)

    async def scenario():
        await _claimed(orchestrator, wallet)
        await orchestrator.authorize()
        await orchestrator.wait_for_refresh()
        recorder.events.clear()
        result = await orchestrator.stake("150")
        await orchestrator.wait_for_refresh()
        return result

    result = asyncio.run(scenario())

    assert result.ok
    refreshed = {value for value, _ in recorder.of(OrchestratorEvent.VALUE_REFRESHED)}
    assert refreshed == {TrackedValue.CZAMA_BALANCE, TrackedValue.STAKED}


def test_account_change_clears_chain_state(orchestrator, wallet):
    async def scenario():
        await _claimed(orchestrator, wallet)
        assert orchestrator.state.handles
        await wallet.switch_account(OTHER_USER)

    asyncio.run(scenario())

    assert orchestrator.state.handles == {}
    assert orchestrator.state.claimed == {}


def test_reads_for_previous_account_are_dropped(orchestrator, wallet):
    async def scenario():
        await wallet.connect()
        orchestrator.refresh()
        await wallet.switch_account(OTHER_USER)
        await orchestrator.wait_for_refresh()

    asyncio.run(scenario())

    assert orchestrator.state.handles == {}


class HeldStakedReadVault:
    """Once armed, holds the first staked-balance read until a later read lands."""

    def __init__(self, inner):
        self._inner = inner
        self._release = None
        self.armed = False
        self.held_handle = None

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def get_staked_balance(self, user):
        handle = await self._inner.get_staked_balance(user)
        if not self.armed:
            return handle
        if self._release is None:
            self._release = asyncio.Event()
            self.held_handle = handle
            await self._release.wait()
        else:
            self._release.set()
        return handle


def test_late_read_does_not_overwrite_newer_one(config, wallet, service, contracts, clock):
    vault = HeldStakedReadVault(contracts.vault)
    suite = ContractSuite(czama=contracts.czama, cusdt=contracts.cusdt, vault=vault)
    orchestrator = ActionOrchestrator(wallet, service, suite, config, clock=clock)

    async def scenario():
        await _claimed(orchestrator, wallet)
        assert (await orchestrator.authorize()).ok
        await orchestrator.wait_for_refresh()

        vault.armed = True
        assert (await orchestrator.stake("100")).ok
        # let the first read fetch its handle before the second stake lands
        await asyncio.sleep(0)
        assert (await orchestrator.stake("50")).ok
        await orchestrator.wait_for_refresh()
        return await contracts.vault.get_staked_balance(USER)

    current = asyncio.run(scenario())

    assert vault.held_handle is not None
    assert vault.held_handle != current
    assert orchestrator.state.handles[TrackedValue.STAKED] == current


def test_refresh_without_identity_schedules_nothing(orchestrator):
    async def scenario():
        return orchestrator.refresh()

    assert asyncio.run(scenario()) == 0


# -----------------------------------------------------------------------------
# Decrypt
# -----------------------------------------------------------------------------

def test_decrypt_cache_hit_skips_handshake(orchestrator, wallet, service):
    async def scenario():
        await _claimed(orchestrator, wallet)
        first = await orchestrator.decrypt_tracked(TrackedValue.CZAMA_BALANCE)
        second = await orchestrator.decrypt_tracked(TrackedValue.CZAMA_BALANCE)
        return first, second

    first, second = asyncio.run(scenario())

    assert first.value == second.value == "1000"
    assert second.message == "Decrypted value: 1000"
    assert len(wallet.sign_requests) == 1
    assert len(calls_named(service, "user_decrypt")) == 1
    assert orchestrator.decrypted_value(TrackedValue.CZAMA_BALANCE) == "1000"


def test_decrypt_before_any_read(orchestrator, wallet, service):
    async def scenario():
        await wallet.connect()
        return await orchestrator.decrypt_tracked(TrackedValue.STAKED)

    result = asyncio.run(scenario())

    assert result.error_kind is ErrorKind.NOTHING_TO_DECRYPT
    assert result.message == "Nothing to decrypt yet."
    assert service.calls == []


def test_decrypt_zero_handle_is_local(orchestrator, wallet, service):
    async def scenario():
        await _claimed(orchestrator, wallet)
        return await orchestrator.decrypt_tracked(TrackedValue.STAKED)

    result = asyncio.run(scenario())

    assert result.ok
    assert result.value == "0"
    assert wallet.sign_requests == []
    assert calls_named(service, "user_decrypt") == []


def test_decrypt_signature_rejected_leaves_cache_empty(orchestrator, wallet):
    wallet.set_auto_approve(False)

    async def scenario():
        await _claimed(orchestrator, wallet)
        return await orchestrator.decrypt_tracked(TrackedValue.CZAMA_BALANCE)

    result = asyncio.run(scenario())

    assert result.error_kind is ErrorKind.SIGNATURE_REJECTED
    assert len(orchestrator.state.cache) == 0


def test_decrypt_tracked_rejects_flags(orchestrator):
    with pytest.raises(ValueError):
        asyncio.run(orchestrator.decrypt_tracked(TrackedValue.CLAIMED_CZAMA))
