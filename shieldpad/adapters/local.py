# shieldpad/adapters/local.py
"""
ShieldPad Adapters: Local Key Wallet

WalletAdapter over a private key held in process, for scripts and bots
that drive the orchestrator without a browser wallet. Typed data is
signed with eth-account, so the signature recovers to the key's address.

Pair it with web3 contract bindings using the same key:

    wallet = LocalKeyWalletAdapter(private_key, chain_id=config.chain_id)
    contracts = connect_contracts(config, private_key=private_key)
    orchestrator = ActionOrchestrator(wallet, service, contracts, config)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .base import (
    EIP712Domain,
    SignResult,
    UnsupportedOperationError,
    WalletAdapter,
    WalletAdapterError,
    WalletCapability,
    WalletEvent,
    WalletInfo,
    WalletState,
)


logger = logging.getLogger(__name__)


class LocalKeyWalletAdapter(WalletAdapter):
    """Single-account wallet backed by an eth-account LocalAccount."""

    def __init__(self, private_key: str, chain_id: int = 1):
        super().__init__(chain_id)
        self._account: LocalAccount = Account.from_key(private_key)

    @property
    def name(self) -> str:
        return "LocalKey"

    @property
    def capabilities(self) -> int:
        return (
            WalletCapability.SIGN_TYPED_DATA |
            WalletCapability.SEND_TRANSACTION
        )

    async def connect(self) -> WalletInfo:
        self._info = WalletInfo(
            name=self.name,
            chain_id=self._chain_id,
            address=self._account.address,
            capabilities=self.capabilities,
        )
        self._state = WalletState.CONNECTED
        logger.info("local key wallet connected: %s", self._account.address)
        await self._emit(WalletEvent.CONNECTED, self._info)
        return self._info

    async def disconnect(self) -> None:
        self._state = WalletState.DISCONNECTED
        self._info = None
        await self._emit(WalletEvent.DISCONNECTED)

    async def switch_account(self, address: str) -> None:
        if address.lower() != self._account.address.lower():
            raise UnsupportedOperationError("Local key wallet holds a single account")

    async def sign_typed_data(
        self,
        domain: EIP712Domain,
        types: Dict[str, List[Dict[str, str]]],
        value: Dict[str, Any],
    ) -> SignResult:
        self._require_connected()

        try:
            signed = self._account.sign_typed_data(domain.to_dict(), types, value)
        except (TypeError, ValueError) as e:
            raise WalletAdapterError(f"Cannot sign typed data: {e}")

        return SignResult(signature=bytes(signed.signature), recovery_id=signed.v - 27)
