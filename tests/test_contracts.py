# tests/test_contracts.py
"""Mock ShieldPadVault / confidential token rule tests."""

import asyncio

import pytest

from shieldpad.chain import (
    CLAIM_AMOUNT,
    ContractRevertError,
    MockConfidentialToken,
    TransactionReceiptError,
)
from shieldpad.core import ZERO_HANDLE
from shieldpad.fhe import EncryptedInputBuilder

from conftest import USER

UNIT = 10**6


def _run(coro):
    return asyncio.run(coro)


async def _claim_and_authorize(contracts, clock, user=USER):
    vault = contracts.vault.connect(user)
    await (await vault.claim_czama()).wait()
    expiry = int(clock()) + 3600
    await (await contracts.czama.connect(user).set_operator(vault.address, expiry)).wait()
    await (await contracts.cusdt.connect(user).set_operator(vault.address, expiry)).wait()
    return vault


async def _input(service, vault, amount, user=USER):
    return await EncryptedInputBuilder(service).build(vault.address, user, amount)


def test_fresh_account_reads_zero_handles(contracts):
    assert _run(contracts.czama.confidential_balance_of(USER)) == ZERO_HANDLE
    assert _run(contracts.vault.get_staked_balance(USER)) == ZERO_HANDLE
    assert _run(contracts.vault.has_claimed_czama(USER)) is False


def test_claim_once(contracts):
    vault = contracts.vault.connect(USER)

    async def scenario():
        await (await vault.claim_czama()).wait()
        with pytest.raises(ContractRevertError, match="cZAMA already claimed"):
            await vault.claim_czama()
        await (await vault.claim_cusdt()).wait()
        with pytest.raises(ContractRevertError, match="cUSDT already claimed"):
            await vault.claim_cusdt()

    _run(scenario())
    assert contracts.czama.balance_value(USER) == CLAIM_AMOUNT
    assert contracts.cusdt.balance_value(USER) == CLAIM_AMOUNT


def test_operator_revert_leaves_input_unspent(service, contracts, clock):
    vault = contracts.vault.connect(USER)

    async def scenario():
        await (await vault.claim_czama()).wait()
        encrypted = await _input(service, vault, 100 * UNIT)
        with pytest.raises(ContractRevertError, match="not an operator"):
            await vault.stake_czama(encrypted.handle, encrypted.input_proof)

        expiry = int(clock()) + 3600
        await (await contracts.czama.connect(USER).set_operator(vault.address, expiry)).wait()
        await (await vault.stake_czama(encrypted.handle, encrypted.input_proof)).wait()

        loan = await _input(service, vault, 40 * UNIT)
        await (await vault.borrow_cusdt(loan.handle, loan.input_proof)).wait()

        repayment = await _input(service, vault, 40 * UNIT)
        with pytest.raises(ContractRevertError, match="not an operator for cUSDT"):
            await vault.repay_cusdt(repayment.handle, repayment.input_proof)
        await (await contracts.cusdt.connect(USER).set_operator(vault.address, expiry)).wait()
        await (await vault.repay_cusdt(repayment.handle, repayment.input_proof)).wait()

    _run(scenario())
    assert contracts.czama.balance_value(USER) == CLAIM_AMOUNT - 100 * UNIT
    assert contracts.cusdt.balance_value(USER) == 0


def test_only_the_vault_mints(service, contracts, config):
    with pytest.raises(ContractRevertError, match="not the minter"):
        contracts.czama._mint(USER, UNIT, USER)

    undeployed = MockConfidentialToken(service, config.czama_address, "cZAMA")
    with pytest.raises(ContractRevertError, match="not the minter"):
        undeployed._mint(USER, UNIT, config.vault_address)

    contracts.czama._mint(USER, UNIT, config.vault_address.upper().replace("0X", "0x"))
    assert contracts.czama.balance_value(USER) == UNIT


def test_stake_and_unstake(service, contracts, clock):
    async def scenario():
        vault = await _claim_and_authorize(contracts, clock)
        stake = await _input(service, vault, 100 * UNIT)
        await (await vault.stake_czama(stake.handle, stake.input_proof)).wait()
        assert service.value_of(await vault.get_staked_balance(USER)) == 100 * UNIT
        assert contracts.czama.balance_value(USER) == CLAIM_AMOUNT - 100 * UNIT

        unstake = await _input(service, vault, 100 * UNIT)
        await (await vault.unstake_czama(unstake.handle, unstake.input_proof)).wait()
        assert service.value_of(await vault.get_staked_balance(USER)) == 0
        assert contracts.czama.balance_value(USER) == CLAIM_AMOUNT

    _run(scenario())


def test_reused_input_is_rejected(service, contracts, clock):
    async def scenario():
        vault = await _claim_and_authorize(contracts, clock)
        stake = await _input(service, vault, UNIT)
        await vault.stake_czama(stake.handle, stake.input_proof)
        with pytest.raises(ContractRevertError, match="already used"):
            await vault.stake_czama(stake.handle, stake.input_proof)

    _run(scenario())


def test_borrow_over_limit_moves_nothing(service, contracts, clock):
    async def scenario():
        vault = await _claim_and_authorize(contracts, clock)
        stake = await _input(service, vault, 100 * UNIT)
        await vault.stake_czama(stake.handle, stake.input_proof)

        too_much = await _input(service, vault, 60 * UNIT)
        await (await vault.borrow_cusdt(too_much.handle, too_much.input_proof)).wait()
        assert service.value_of(await vault.get_borrowed_balance(USER)) == 0

        ok = await _input(service, vault, 40 * UNIT)
        await (await vault.borrow_cusdt(ok.handle, ok.input_proof)).wait()
        assert service.value_of(await vault.get_borrowed_balance(USER)) == 40 * UNIT
        assert contracts.cusdt.balance_value(USER) == 40 * UNIT

        repay = await _input(service, vault, 40 * UNIT)
        await (await vault.repay_cusdt(repay.handle, repay.input_proof)).wait()
        assert service.value_of(await vault.get_borrowed_balance(USER)) == 0
        assert contracts.cusdt.balance_value(USER) == 0

    _run(scenario())


def test_confirmation_failure_and_read_failure(contracts, chain):
    vault = contracts.vault.connect(USER)
    chain.fail_next_confirmation = "transaction reverted: out of gas"

    async def scenario():
        tx = await vault.claim_czama()
        with pytest.raises(TransactionReceiptError, match="out of gas"):
            await tx.wait()
        await (await vault.claim_cusdt()).wait()

    _run(scenario())

    chain.fail_reads = "rpc unavailable"
    with pytest.raises(Exception, match="rpc unavailable"):
        _run(contracts.vault.get_staked_balance(USER))
