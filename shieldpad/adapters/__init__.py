# shieldpad/adapters/__init__.py
"""
ShieldPad Adapters: Wallet Integration Layer

Adapters:
    WalletAdapter         - Abstract base class for all wallet adapters
    MockWalletAdapter     - Mock implementation for testing
    LocalKeyWalletAdapter - eth-account signer over an in-process private key
"""

from .base import (
    WalletAdapter,
    MockWalletAdapter,
    WalletState,
    WalletCapability,
    WalletEvent,
    WalletInfo,
    SignResult,
    EIP712Domain,
    TypedDataRequest,
    WalletAdapterError,
    NotConnectedError,
    UnsupportedOperationError,
    SignRequestRejectedError,
    WalletConnectionError,
)
from .local import LocalKeyWalletAdapter

__all__ = [
    "WalletAdapter",
    "MockWalletAdapter",
    "LocalKeyWalletAdapter",
    "WalletState",
    "WalletCapability",
    "WalletEvent",
    "WalletInfo",
    "SignResult",
    "EIP712Domain",
    "TypedDataRequest",
    "WalletAdapterError",
    "NotConnectedError",
    "UnsupportedOperationError",
    "SignRequestRejectedError",
    "WalletConnectionError",
]
