# shieldpad/chain/__init__.py
"""
ShieldPad Chain: contract boundary (cZAMA, cUSDT, ShieldPadVault).
"""

from .contracts import (
    ConfidentialToken,
    ShieldVault,
    ContractSuite,
    TransactionHandle,
    TxReceipt,
    ChainError,
    ContractRevertError,
    TransactionReceiptError,
    MockChain,
    MockTransaction,
    MockConfidentialToken,
    MockShieldVault,
    deploy_mock_suite,
    CZAMA_SYMBOL,
    CUSDT_SYMBOL,
    CLAIM_AMOUNT,
    MAX_LTV_PERCENT,
)
from .web3_contracts import (
    Web3ConfidentialToken,
    Web3ShieldVault,
    Web3Transaction,
    TOKEN_ABI,
    VAULT_ABI,
    connect_contracts,
    web3_suite,
)

__all__ = [
    "ConfidentialToken",
    "ShieldVault",
    "ContractSuite",
    "TransactionHandle",
    "TxReceipt",
    "ChainError",
    "ContractRevertError",
    "TransactionReceiptError",
    "MockChain",
    "MockTransaction",
    "MockConfidentialToken",
    "MockShieldVault",
    "deploy_mock_suite",
    "CZAMA_SYMBOL",
    "CUSDT_SYMBOL",
    "CLAIM_AMOUNT",
    "MAX_LTV_PERCENT",
    "Web3ConfidentialToken",
    "Web3ShieldVault",
    "Web3Transaction",
    "TOKEN_ABI",
    "VAULT_ABI",
    "connect_contracts",
    "web3_suite",
]
