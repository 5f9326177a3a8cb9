# shieldpad/chain/contracts.py
"""
ShieldPad Chain: Token and Vault Contract Interfaces

ABI-level view of the on-chain collaborators:

    ConfidentialToken (cZAMA, cUSDT)
        confidential_balance_of(user) -> handle
        set_operator(operator, expiry) -> tx

    ShieldVault (ShieldPadVault)
        get_staked_balance(user) / get_borrowed_balance(user) -> handle
        has_claimed_czama(user) / has_claimed_cusdt(user) -> bool
        claim_czama() / claim_cusdt() -> tx
        stake_czama / unstake_czama / borrow_cusdt / repay_cusdt(handle, proof) -> tx

Every write returns a TransactionHandle whose wait() resolves on
confirmation. Business-rule reverts raise ContractRevertError with the
contract's reason string.

The Mock* classes implement the vault rules in memory on top of
MockEncryptionService, the way an FHE mock node would: plaintext arithmetic
behind handles, confidential amounts clamped instead of reverting.

Usage:
    service = MockEncryptionService(chain_id=config.chain_id)
    suite = deploy_mock_suite(
        service, config.vault_address, config.czama_address, config.cusdt_address
    )

    vault = suite.vault.connect(user)
    tx = await vault.claim_czama()
    await tx.wait()

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set, Tuple

from ..core.handles import ZERO_HANDLE
from ..fhe.service import InvalidInputProofError, MockEncryptionService


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

CZAMA_SYMBOL = "cZAMA"
CUSDT_SYMBOL = "cUSDT"

CLAIM_AMOUNT = 1_000 * 10**6

# Borrow limit as a percentage of staked cZAMA
MAX_LTV_PERCENT = 50


# =============================================================================
# Exceptions
# =============================================================================

class ChainError(Exception):
    """Base chain-layer error."""
    pass


class ContractRevertError(ChainError):
    """Contract reverted with a reason string."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class TransactionReceiptError(ChainError):
    """Transaction mined but failed, or confirmation never arrived."""
    pass


# =============================================================================
# Types
# =============================================================================

@dataclass
class TxReceipt:
    """Confirmed transaction receipt."""
    tx_hash: str
    status: int = 1
    block_number: int = 0


class TransactionHandle(ABC):
    """Submitted transaction awaiting confirmation."""

    @property
    @abstractmethod
    def hash(self) -> str:
        pass

    @abstractmethod
    async def wait(self) -> TxReceipt:
        """Wait for confirmation."""
        pass


# =============================================================================
# Interfaces
# =============================================================================

class ConfidentialToken(ABC):
    """Confidential ERC20-like token."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @property
    @abstractmethod
    def symbol(self) -> str:
        pass

    @abstractmethod
    def connect(self, sender: str) -> ConfidentialToken:
        """Bind writes to `sender`."""
        pass

    @abstractmethod
    async def confidential_balance_of(self, user: str) -> str:
        pass

    @abstractmethod
    async def set_operator(self, operator: str, expiry: int) -> TransactionHandle:
        pass


class ShieldVault(ABC):
    """Staking / borrowing vault over cZAMA collateral and cUSDT loans."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    def connect(self, sender: str) -> ShieldVault:
        pass

    @abstractmethod
    async def get_staked_balance(self, user: str) -> str:
        pass

    @abstractmethod
    async def get_borrowed_balance(self, user: str) -> str:
        pass

    @abstractmethod
    async def has_claimed_czama(self, user: str) -> bool:
        pass

    @abstractmethod
    async def has_claimed_cusdt(self, user: str) -> bool:
        pass

    @abstractmethod
    async def claim_czama(self) -> TransactionHandle:
        pass

    @abstractmethod
    async def claim_cusdt(self) -> TransactionHandle:
        pass

    @abstractmethod
    async def stake_czama(self, handle: str, proof: str) -> TransactionHandle:
        pass

    @abstractmethod
    async def unstake_czama(self, handle: str, proof: str) -> TransactionHandle:
        pass

    @abstractmethod
    async def borrow_cusdt(self, handle: str, proof: str) -> TransactionHandle:
        pass

    @abstractmethod
    async def repay_cusdt(self, handle: str, proof: str) -> TransactionHandle:
        pass


@dataclass
class ContractSuite:
    """The three deployed contracts the core works with."""
    czama: ConfidentialToken
    cusdt: ConfidentialToken
    vault: ShieldVault


# =============================================================================
# Mock Chain (for testing)
# =============================================================================

class MockTransaction(TransactionHandle):
    """Already-applied transaction; wait() yields once and confirms."""

    def __init__(self, tx_hash: str, block_number: int, error: Optional[str] = None):
        self._hash = tx_hash
        self._block_number = block_number
        self._error = error

    @property
    def hash(self) -> str:
        return self._hash

    async def wait(self) -> TxReceipt:
        await asyncio.sleep(0)
        if self._error is not None:
            raise TransactionReceiptError(self._error)
        return TxReceipt(tx_hash=self._hash, status=1, block_number=self._block_number)


@dataclass
class MockChain:
    """Block counter and failure injection shared by mock contracts."""
    block_number: int = 0
    clock: Callable[[], float] = time.time
    fail_next_confirmation: Optional[str] = None
    fail_reads: Optional[str] = None
    transactions: int = 0

    def new_tx(self, label: str) -> MockTransaction:
        self.block_number += 1
        self.transactions += 1
        tx_hash = "0x" + hashlib.sha256(
            f"{label}:{self.block_number}".encode()
        ).hexdigest()
        error, self.fail_next_confirmation = self.fail_next_confirmation, None
        return MockTransaction(tx_hash, self.block_number, error)

    def check_read(self) -> None:
        if self.fail_reads is not None:
            raise ChainError(self.fail_reads)


@dataclass
class _TokenLedger:
    balances: Dict[str, str] = field(default_factory=dict)
    operators: Dict[Tuple[str, str], int] = field(default_factory=dict)
    minter: Optional[str] = None


class MockConfidentialToken(ConfidentialToken):
    """In-memory confidential token."""

    def __init__(
        self,
        service: MockEncryptionService,
        address: str,
        symbol: str,
        chain: Optional[MockChain] = None,
        sender: Optional[str] = None,
        _ledger: Optional[_TokenLedger] = None,
    ):
        self._service = service
        self._address = address
        self._symbol = symbol
        self._chain = chain or MockChain()
        self._sender = sender.lower() if sender else None
        self._ledger = _ledger or _TokenLedger()

    @property
    def address(self) -> str:
        return self._address

    @property
    def symbol(self) -> str:
        return self._symbol

    def connect(self, sender: str) -> MockConfidentialToken:
        return MockConfidentialToken(
            self._service, self._address, self._symbol,
            self._chain, sender, self._ledger,
        )

    def set_minter(self, minter: str) -> None:
        self._ledger.minter = minter.lower()

    async def confidential_balance_of(self, user: str) -> str:
        self._chain.check_read()
        return self._ledger.balances.get(user.lower(), ZERO_HANDLE)

    async def set_operator(self, operator: str, expiry: int) -> TransactionHandle:
        holder = self._require_sender()
        self._ledger.operators[(holder, operator.lower())] = int(expiry)
        return self._chain.new_tx(f"{self._symbol}.setOperator:{holder}")

    def is_operator(self, holder: str, spender: str) -> bool:
        expiry = self._ledger.operators.get((holder.lower(), spender.lower()), 0)
        return expiry > self._chain.clock()

    # -------------------------------------------------------------------------
    # Internal ledger operations (called by the vault)
    # -------------------------------------------------------------------------

    def balance_value(self, holder: str) -> int:
        handle = self._ledger.balances.get(holder.lower())
        return self._service.value_of(handle) if handle else 0

    def _set_balance(self, holder: str, value: int) -> None:
        holder = holder.lower()
        self._ledger.balances[holder] = self._service.seal(value, holder, self._address)

    def _mint(self, to: str, amount: int, caller: str) -> None:
        if self._ledger.minter is None or caller.lower() != self._ledger.minter:
            raise ContractRevertError("Caller is not the minter")
        self._set_balance(to, self.balance_value(to) + amount)

    def _burn(self, holder: str, amount: int) -> int:
        """Burn `amount`, or nothing if the balance does not cover it."""
        balance = self.balance_value(holder)
        burned = amount if amount <= balance else 0
        self._set_balance(holder, balance - burned)
        return burned

    def _transfer(self, sender: str, to: str, amount: int) -> int:
        """Confidential transfer: moves `amount` or nothing, never reverts."""
        balance = self.balance_value(sender)
        moved = amount if amount <= balance else 0
        self._set_balance(sender, balance - moved)
        self._set_balance(to, self.balance_value(to) + moved)
        return moved

    def _require_sender(self) -> str:
        if not self._sender:
            raise ContractRevertError("No sender bound to contract")
        return self._sender


@dataclass
class _VaultLedger:
    staked: Dict[str, str] = field(default_factory=dict)
    borrowed: Dict[str, str] = field(default_factory=dict)
    claimed_czama: Set[str] = field(default_factory=set)
    claimed_cusdt: Set[str] = field(default_factory=set)


class MockShieldVault(ShieldVault):
    """In-memory ShieldPadVault."""

    def __init__(
        self,
        service: MockEncryptionService,
        address: str,
        czama: MockConfidentialToken,
        cusdt: MockConfidentialToken,
        chain: Optional[MockChain] = None,
        sender: Optional[str] = None,
        _ledger: Optional[_VaultLedger] = None,
    ):
        self._service = service
        self._address = address
        self._czama = czama
        self._cusdt = cusdt
        self._chain = chain or MockChain()
        self._sender = sender.lower() if sender else None
        self._ledger = _ledger or _VaultLedger()

    @property
    def address(self) -> str:
        return self._address

    @property
    def chain(self) -> MockChain:
        return self._chain

    def connect(self, sender: str) -> MockShieldVault:
        return MockShieldVault(
            self._service, self._address, self._czama, self._cusdt,
            self._chain, sender, self._ledger,
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_staked_balance(self, user: str) -> str:
        self._chain.check_read()
        return self._ledger.staked.get(user.lower(), ZERO_HANDLE)

    async def get_borrowed_balance(self, user: str) -> str:
        self._chain.check_read()
        return self._ledger.borrowed.get(user.lower(), ZERO_HANDLE)

    async def has_claimed_czama(self, user: str) -> bool:
        self._chain.check_read()
        return user.lower() in self._ledger.claimed_czama

    async def has_claimed_cusdt(self, user: str) -> bool:
        self._chain.check_read()
        return user.lower() in self._ledger.claimed_cusdt

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def claim_czama(self) -> TransactionHandle:
        user = self._require_sender()
        if user in self._ledger.claimed_czama:
            raise ContractRevertError("cZAMA already claimed")
        self._czama._mint(user, CLAIM_AMOUNT, self._address)
        self._ledger.claimed_czama.add(user)
        return self._chain.new_tx(f"claimCZama:{user}")

    async def claim_cusdt(self) -> TransactionHandle:
        user = self._require_sender()
        if user in self._ledger.claimed_cusdt:
            raise ContractRevertError("cUSDT already claimed")
        self._cusdt._mint(user, CLAIM_AMOUNT, self._address)
        self._ledger.claimed_cusdt.add(user)
        return self._chain.new_tx(f"claimCUSDT:{user}")

    async def stake_czama(self, handle: str, proof: str) -> TransactionHandle:
        user = self._require_sender()
        self._require_operator(self._czama, user)
        amount = self._verify(handle, proof, user)
        moved = self._czama._transfer(user, self._address, amount)
        self._set(self._ledger.staked, user, self._value(self._ledger.staked, user) + moved)
        return self._chain.new_tx(f"stakeCZama:{user}")

    async def unstake_czama(self, handle: str, proof: str) -> TransactionHandle:
        user = self._require_sender()
        amount = self._verify(handle, proof, user)
        staked = self._value(self._ledger.staked, user)
        borrowed = self._value(self._ledger.borrowed, user)
        remaining = staked - amount
        ok = amount <= staked and borrowed * 100 <= remaining * MAX_LTV_PERCENT
        moved = amount if ok else 0
        self._set(self._ledger.staked, user, staked - moved)
        self._czama._transfer(self._address, user, moved)
        return self._chain.new_tx(f"unstakeCZama:{user}")

    async def borrow_cusdt(self, handle: str, proof: str) -> TransactionHandle:
        user = self._require_sender()
        amount = self._verify(handle, proof, user)
        staked = self._value(self._ledger.staked, user)
        borrowed = self._value(self._ledger.borrowed, user)
        ok = (borrowed + amount) * 100 <= staked * MAX_LTV_PERCENT
        minted = amount if ok else 0
        self._set(self._ledger.borrowed, user, borrowed + minted)
        self._cusdt._mint(user, minted, self._address)
        return self._chain.new_tx(f"borrowCUSDT:{user}")

    async def repay_cusdt(self, handle: str, proof: str) -> TransactionHandle:
        user = self._require_sender()
        self._require_operator(self._cusdt, user)
        amount = self._verify(handle, proof, user)
        borrowed = self._value(self._ledger.borrowed, user)
        repay = amount if amount <= borrowed else 0
        burned = self._cusdt._burn(user, repay)
        self._set(self._ledger.borrowed, user, borrowed - burned)
        return self._chain.new_tx(f"repayCUSDT:{user}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _verify(self, handle: str, proof: str, user: str) -> int:
        try:
            return self._service.verify_input(handle, proof, self._address, user)
        except InvalidInputProofError as e:
            raise ContractRevertError(str(e))

    def _require_operator(self, token: MockConfidentialToken, user: str) -> None:
        if not token.is_operator(user, self._address):
            raise ContractRevertError(f"Vault is not an operator for {token.symbol}")

    def _value(self, table: Dict[str, str], user: str) -> int:
        handle = table.get(user)
        return self._service.value_of(handle) if handle else 0

    def _set(self, table: Dict[str, str], user: str, value: int) -> None:
        table[user] = self._service.seal(value, user, self._address)

    def _require_sender(self) -> str:
        if not self._sender:
            raise ContractRevertError("No sender bound to contract")
        return self._sender


def deploy_mock_suite(
    service: MockEncryptionService,
    vault_address: str,
    czama_address: str,
    cusdt_address: str,
    chain: Optional[MockChain] = None,
) -> ContractSuite:
    """Deploy cZAMA, cUSDT and the vault, and make the vault their minter."""
    chain = chain or MockChain()
    czama = MockConfidentialToken(service, czama_address, CZAMA_SYMBOL, chain)
    cusdt = MockConfidentialToken(service, cusdt_address, CUSDT_SYMBOL, chain)
    vault = MockShieldVault(service, vault_address, czama, cusdt, chain)
    czama.set_minter(vault_address)
    cusdt.set_minter(vault_address)
    logger.info("mock deployment: %s=%s %s=%s vault=%s",
                CZAMA_SYMBOL, czama_address, CUSDT_SYMBOL, cusdt_address, vault_address)
    return ContractSuite(czama=czama, cusdt=cusdt, vault=vault)
