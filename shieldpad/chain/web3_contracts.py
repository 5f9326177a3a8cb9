# shieldpad/chain/web3_contracts.py
"""
ShieldPad Chain: web3 Contract Bindings

ConfidentialToken and ShieldVault backed by deployed contracts over JSON-RPC.

Writes are sent either from a node-managed account (`transact` with
`from`) or, when a private key is given, signed locally with eth-account.
Reverts surface as ContractRevertError carrying the contract's reason
string; mined-but-failed transactions and receipt timeouts surface from
wait() as TransactionReceiptError.

Requirements:
    pip install web3

Usage:
    # SHIELDPAD_RPC_URL and contract addresses from the environment
    suite = connect_contracts(ShieldPadConfig.from_env())

    vault = suite.vault.connect(user)
    tx = await vault.claim_czama()
    await tx.wait()

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from ..config import ENV_PREFIX, ConfigError, ShieldPadConfig
from .contracts import (
    CUSDT_SYMBOL,
    CZAMA_SYMBOL,
    ChainError,
    ConfidentialToken,
    ContractRevertError,
    ContractSuite,
    ShieldVault,
    TransactionHandle,
    TransactionReceiptError,
    TxReceipt,
)


logger = logging.getLogger(__name__)


# =============================================================================
# ABI
# =============================================================================

def _fn(name: str, inputs: List[str], outputs: List[str], mutability: str) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


TOKEN_ABI: List[Dict[str, Any]] = [
    _fn("confidentialBalanceOf", ["address"], ["bytes32"], "view"),
    _fn("setOperator", ["address", "uint48"], [], "nonpayable"),
]

VAULT_ABI: List[Dict[str, Any]] = [
    _fn("getStakedBalance", ["address"], ["bytes32"], "view"),
    _fn("getBorrowedBalance", ["address"], ["bytes32"], "view"),
    _fn("hasClaimedCZAMA", ["address"], ["bool"], "view"),
    _fn("hasClaimedCUSDT", ["address"], ["bool"], "view"),
    _fn("claimCZama", [], [], "nonpayable"),
    _fn("claimCUSDT", [], [], "nonpayable"),
    _fn("stakeCZama", ["bytes32", "bytes"], [], "nonpayable"),
    _fn("unstakeCZama", ["bytes32", "bytes"], [], "nonpayable"),
    _fn("borrowCUSDT", ["bytes32", "bytes"], [], "nonpayable"),
    _fn("repayCUSDT", ["bytes32", "bytes"], [], "nonpayable"),
]

# Seconds to wait for a receipt
DEFAULT_RECEIPT_TIMEOUT = 120

REVERT_PREFIX = "execution reverted: "


# =============================================================================
# Helper Functions
# =============================================================================

def revert_reason(error: ContractLogicError) -> str:
    """Reason string of a revert, without the node's prefix."""
    message = getattr(error, "message", None) or str(error)
    if message.startswith(REVERT_PREFIX):
        return message[len(REVERT_PREFIX):]
    return message


def _to_hex(value: Any) -> str:
    return "0x" + bytes(value).hex()


def _from_hex(value: str) -> bytes:
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


# =============================================================================
# Transactions
# =============================================================================

class Web3Transaction(TransactionHandle):
    """Sent transaction; wait() polls for its receipt."""

    def __init__(self, w3: AsyncWeb3, tx_hash: bytes, timeout: float = DEFAULT_RECEIPT_TIMEOUT):
        self._w3 = w3
        self._tx_hash = tx_hash
        self._timeout = timeout

    @property
    def hash(self) -> str:
        return _to_hex(self._tx_hash)

    async def wait(self) -> TxReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                self._tx_hash, timeout=self._timeout
            )
        except TimeExhausted as e:
            raise TransactionReceiptError(str(e))

        if receipt["status"] != 1:
            raise TransactionReceiptError(f"Transaction failed: {self.hash}")
        return TxReceipt(
            tx_hash=self.hash,
            status=receipt["status"],
            block_number=receipt["blockNumber"],
        )


class _Web3Contract:
    """Shared plumbing for the bound contract wrappers."""

    def __init__(
        self,
        w3: AsyncWeb3,
        address: str,
        abi: List[Dict[str, Any]],
        sender: Optional[str] = None,
        account: Optional[LocalAccount] = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ):
        self._w3 = w3
        self._address = Web3.to_checksum_address(address)
        self._contract = w3.eth.contract(address=self._address, abi=abi)
        self._account = account
        if sender is None and account is not None:
            sender = account.address
        self._sender = Web3.to_checksum_address(sender) if sender else None
        self._receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        return self._address

    def _bound(self, sender: str) -> dict:
        account = self._account
        if account is not None and account.address.lower() != sender.lower():
            account = None
        return {
            "sender": sender,
            "account": account,
            "receipt_timeout": self._receipt_timeout,
        }

    async def _call(self, name: str, *args: Any) -> Any:
        try:
            return await getattr(self._contract.functions, name)(*args).call()
        except ContractLogicError as e:
            raise ContractRevertError(revert_reason(e))

    async def _send(self, name: str, *args: Any) -> TransactionHandle:
        if not self._sender:
            raise ChainError("No sender bound to contract")

        fn = getattr(self._contract.functions, name)(*args)
        try:
            if self._account is not None:
                tx = await fn.build_transaction({
                    "from": self._sender,
                    "nonce": await self._w3.eth.get_transaction_count(self._sender),
                })
                signed = self._account.sign_transaction(tx)
                tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = await fn.transact({"from": self._sender})
        except ContractLogicError as e:
            raise ContractRevertError(revert_reason(e))

        logger.debug("%s sent: %s", name, _to_hex(tx_hash))
        return Web3Transaction(self._w3, tx_hash, self._receipt_timeout)


# =============================================================================
# Bindings
# =============================================================================

class Web3ConfidentialToken(_Web3Contract, ConfidentialToken):
    """ERC-7984 style confidential token."""

    def __init__(self, w3: AsyncWeb3, address: str, symbol: str, **kwargs):
        super().__init__(w3, address, TOKEN_ABI, **kwargs)
        self._symbol = symbol

    @property
    def symbol(self) -> str:
        return self._symbol

    def connect(self, sender: str) -> Web3ConfidentialToken:
        return Web3ConfidentialToken(
            self._w3, self._address, self._symbol, **self._bound(sender)
        )

    async def confidential_balance_of(self, user: str) -> str:
        return _to_hex(await self._call(
            "confidentialBalanceOf", Web3.to_checksum_address(user)
        ))

    async def set_operator(self, operator: str, expiry: int) -> TransactionHandle:
        return await self._send("setOperator", Web3.to_checksum_address(operator), expiry)


class Web3ShieldVault(_Web3Contract, ShieldVault):
    """ShieldPadVault."""

    def __init__(self, w3: AsyncWeb3, address: str, **kwargs):
        super().__init__(w3, address, VAULT_ABI, **kwargs)

    def connect(self, sender: str) -> Web3ShieldVault:
        return Web3ShieldVault(self._w3, self._address, **self._bound(sender))

    async def get_staked_balance(self, user: str) -> str:
        return _to_hex(await self._call("getStakedBalance", Web3.to_checksum_address(user)))

    async def get_borrowed_balance(self, user: str) -> str:
        return _to_hex(await self._call("getBorrowedBalance", Web3.to_checksum_address(user)))

    async def has_claimed_czama(self, user: str) -> bool:
        return bool(await self._call("hasClaimedCZAMA", Web3.to_checksum_address(user)))

    async def has_claimed_cusdt(self, user: str) -> bool:
        return bool(await self._call("hasClaimedCUSDT", Web3.to_checksum_address(user)))

    async def claim_czama(self) -> TransactionHandle:
        return await self._send("claimCZama")

    async def claim_cusdt(self) -> TransactionHandle:
        return await self._send("claimCUSDT")

    async def stake_czama(self, handle: str, proof: str) -> TransactionHandle:
        return await self._send("stakeCZama", _from_hex(handle), _from_hex(proof))

    async def unstake_czama(self, handle: str, proof: str) -> TransactionHandle:
        return await self._send("unstakeCZama", _from_hex(handle), _from_hex(proof))

    async def borrow_cusdt(self, handle: str, proof: str) -> TransactionHandle:
        return await self._send("borrowCUSDT", _from_hex(handle), _from_hex(proof))

    async def repay_cusdt(self, handle: str, proof: str) -> TransactionHandle:
        return await self._send("repayCUSDT", _from_hex(handle), _from_hex(proof))


# =============================================================================
# Factory
# =============================================================================

def web3_suite(
    w3: AsyncWeb3,
    config: ShieldPadConfig,
    private_key: Optional[str] = None,
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
) -> ContractSuite:
    """Bind cZAMA, cUSDT and the vault at the configured addresses."""
    account = Account.from_key(private_key) if private_key else None
    kwargs = {"account": account, "receipt_timeout": receipt_timeout}
    return ContractSuite(
        czama=Web3ConfidentialToken(w3, config.czama_address, CZAMA_SYMBOL, **kwargs),
        cusdt=Web3ConfidentialToken(w3, config.cusdt_address, CUSDT_SYMBOL, **kwargs),
        vault=Web3ShieldVault(w3, config.vault_address, **kwargs),
    )


def connect_contracts(
    config: ShieldPadConfig,
    rpc_url: Optional[str] = None,
    private_key: Optional[str] = None,
) -> ContractSuite:
    """
    Connect to an RPC endpoint and bind the deployed contracts.

    Raises:
        ConfigError: Neither rpc_url nor config.rpc_url is set
    """
    rpc_url = rpc_url or config.rpc_url
    if not rpc_url:
        raise ConfigError(f"{ENV_PREFIX}RPC_URL is not set")

    w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
    logger.info("binding contracts on %s (vault %s)", rpc_url, config.vault_address)
    return web3_suite(w3, config, private_key=private_key)
