# tests/conftest.py
"""Shared fixtures: a mock relayer, mock deployment and mock wallet."""

from __future__ import annotations

import pytest

from shieldpad.adapters import MockWalletAdapter
from shieldpad.chain import MockChain, deploy_mock_suite
from shieldpad.config import ShieldPadConfig
from shieldpad.fhe import MockEncryptionService
from shieldpad.orchestrator import ActionOrchestrator


USER = "0x" + "a" * 40
OTHER_USER = "0x" + "e" * 40
START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config():
    return ShieldPadConfig()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(config, clock):
    return MockEncryptionService(chain_id=config.chain_id, clock=clock)


@pytest.fixture
def chain(clock):
    return MockChain(clock=clock)


@pytest.fixture
def contracts(service, config, chain):
    return deploy_mock_suite(
        service,
        config.vault_address,
        config.czama_address,
        config.cusdt_address,
        chain=chain,
    )


@pytest.fixture
def wallet(config):
    return MockWalletAdapter(chain_id=config.chain_id, address=USER)


@pytest.fixture
def orchestrator(wallet, service, contracts, config, clock):
    return ActionOrchestrator(wallet, service, contracts, config, clock=clock)


def calls_named(service, name):
    return [c for c in service.calls if c == name]
