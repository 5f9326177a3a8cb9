# shieldpad/adapters/base.py
"""
ShieldPad Adapters: Abstract Wallet Interface

The identity and signing capability the orchestration core consumes. A
concrete adapter wraps whatever wallet is connected (browser bridge,
WalletConnect, local key); the core only needs:

    - the current address (None while disconnected)
    - EIP-712 typed-data signing
    - account/connection events

Usage:
    adapter = MockWalletAdapter(address="0x" + "a" * 40)
    await adapter.connect()

    domain = EIP712Domain.from_dict(payload.domain)
    result = await adapter.sign_typed_data(domain, types, message)
    signature_hex = result.hex

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from typing import Optional, Dict, Any, List, Callable, Awaitable


logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================

class WalletState(Enum):
    """Wallet connection state."""
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()


class WalletCapability(IntEnum):
    """Wallet capability flags."""
    SIGN_TYPED_DATA = 0x02       # EIP-712
    SEND_TRANSACTION = 0x08      # eth_sendTransaction


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class WalletInfo:
    """Information about connected wallet."""
    name: str
    chain_id: int
    address: str
    capabilities: int = 0  # Bitmask of WalletCapability
    metadata: Dict[str, Any] = field(default_factory=dict)

    def has_capability(self, cap: WalletCapability) -> bool:
        """Check if wallet has a capability."""
        return bool(self.capabilities & cap)


@dataclass
class SignResult:
    """Signature result."""
    signature: bytes
    recovery_id: Optional[int] = None

    @property
    def hex(self) -> str:
        """Signature as 0x-prefixed hex."""
        return "0x" + self.signature.hex()


@dataclass
class EIP712Domain:
    """EIP-712 domain separator."""
    name: str
    version: str
    chain_id: int
    verifying_contract: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to EIP-712 format."""
        domain = {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
        }
        if self.verifying_contract:
            domain["verifyingContract"] = self.verifying_contract
        return domain

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EIP712Domain:
        """Parse from EIP-712 format."""
        return cls(
            name=data["name"],
            version=data["version"],
            chain_id=int(data["chainId"]),
            verifying_contract=data.get("verifyingContract"),
        )


@dataclass
class TypedDataRequest:
    """Record of one typed-data signature request."""
    domain: EIP712Domain
    types: Dict[str, List[Dict[str, str]]]
    value: Dict[str, Any]
    from_address: str


# =============================================================================
# Event System
# =============================================================================

class WalletEvent(Enum):
    """Wallet events."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ACCOUNT_CHANGED = "accountChanged"


EventCallback = Callable[[WalletEvent, Any], Awaitable[None]]


# =============================================================================
# Exceptions
# =============================================================================

class WalletAdapterError(Exception):
    """Base exception for wallet adapter errors."""
    pass


class NotConnectedError(WalletAdapterError):
    """Wallet not connected."""
    pass


class UnsupportedOperationError(WalletAdapterError):
    """Operation not supported by wallet."""
    pass


class SignRequestRejectedError(WalletAdapterError):
    """User rejected signature request."""
    pass


class WalletConnectionError(WalletAdapterError):
    """Failed to connect to wallet."""
    pass


# =============================================================================
# Abstract Base Class
# =============================================================================

class WalletAdapter(ABC):
    """
    Abstract base class for wallet adapters.

    Provides unified interface for:
    - Wallet connection/disconnection
    - Account management
    - EIP-712 typed-data signing
    - Connection and account events
    """

    def __init__(self, chain_id: int = 1):
        """
        Initialize wallet adapter.

        Args:
            chain_id: Default chain ID
        """
        self._chain_id = chain_id
        self._state = WalletState.DISCONNECTED
        self._info: Optional[WalletInfo] = None
        self._event_handlers: Dict[WalletEvent, List[EventCallback]] = {
            e: [] for e in WalletEvent
        }

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> WalletState:
        """Get current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if wallet is connected."""
        return self._state == WalletState.CONNECTED

    @property
    def info(self) -> Optional[WalletInfo]:
        """Get wallet info (if connected)."""
        return self._info

    @property
    def address(self) -> Optional[str]:
        """Get connected address."""
        return self._info.address if self._info else None

    @property
    def chain_id(self) -> int:
        """Get current chain ID."""
        return self._info.chain_id if self._info else self._chain_id

    @property
    @abstractmethod
    def name(self) -> str:
        """Get adapter name."""
        pass

    @property
    @abstractmethod
    def capabilities(self) -> int:
        """Get supported capabilities bitmask."""
        pass

    # =========================================================================
    # Connection Management
    # =========================================================================

    @abstractmethod
    async def connect(self) -> WalletInfo:
        """
        Connect to wallet.

        Returns:
            WalletInfo with connection details

        Raises:
            WalletConnectionError: If connection fails
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from wallet."""
        pass

    @abstractmethod
    async def switch_account(self, address: str) -> None:
        """
        Switch to a different account.

        Args:
            address: Account address to switch to
        """
        pass

    # =========================================================================
    # Signing Operations
    # =========================================================================

    @abstractmethod
    async def sign_typed_data(
        self,
        domain: EIP712Domain,
        types: Dict[str, List[Dict[str, str]]],
        value: Dict[str, Any],
    ) -> SignResult:
        """
        Sign typed data using EIP-712.

        Args:
            domain: EIP-712 domain
            types: Type definitions (primary type only, no EIP712Domain)
            value: Data to sign

        Returns:
            SignResult with signature

        Raises:
            SignRequestRejectedError: If user rejects
        """
        pass

    # =========================================================================
    # Event Handling
    # =========================================================================

    def on(self, event: WalletEvent, callback: EventCallback) -> None:
        """Register event handler."""
        self._event_handlers[event].append(callback)

    def off(self, event: WalletEvent, callback: EventCallback) -> None:
        """Unregister event handler."""
        if callback in self._event_handlers[event]:
            self._event_handlers[event].remove(callback)

    async def _emit(self, event: WalletEvent, data: Any = None) -> None:
        """Emit event to all handlers."""
        for handler in self._event_handlers[event]:
            try:
                await handler(event, data)
            except Exception as e:
                logger.warning("wallet event handler failed (%s): %s", event.value, e)

    # =========================================================================
    # Utility
    # =========================================================================

    def _require_connected(self) -> None:
        """Raise if not connected."""
        if not self.is_connected:
            raise NotConnectedError("Wallet not connected")

    def _require_capability(self, cap: WalletCapability) -> None:
        """Raise if capability not supported."""
        if self._info and not self._info.has_capability(cap):
            raise UnsupportedOperationError(
                f"Wallet does not support {cap.name}"
            )


# =============================================================================
# Mock Adapter (for testing)
# =============================================================================

class MockWalletAdapter(WalletAdapter):
    """
    Mock wallet adapter for testing.

    Simulates wallet behavior without real wallet connection. Every
    typed-data request is recorded in `sign_requests`.
    """

    def __init__(
        self,
        chain_id: int = 1,
        address: str = "0x" + "1" * 40,
        auto_approve: bool = True,
        fixed_signature: Optional[bytes] = None,
    ):
        super().__init__(chain_id)
        self._mock_address = address.lower()
        self._auto_approve = auto_approve
        self._fixed_signature = fixed_signature
        self.sign_requests: List[TypedDataRequest] = []

    @property
    def name(self) -> str:
        return "MockWallet"

    @property
    def capabilities(self) -> int:
        return (
            WalletCapability.SIGN_TYPED_DATA |
            WalletCapability.SEND_TRANSACTION
        )

    def set_auto_approve(self, approve: bool) -> None:
        self._auto_approve = approve

    async def connect(self) -> WalletInfo:
        self._state = WalletState.CONNECTING

        self._info = WalletInfo(
            name="MockWallet",
            chain_id=self._chain_id,
            address=self._mock_address,
            capabilities=self.capabilities,
        )

        self._state = WalletState.CONNECTED
        await self._emit(WalletEvent.CONNECTED, self._info)

        return self._info

    async def disconnect(self) -> None:
        self._state = WalletState.DISCONNECTED
        self._info = None
        await self._emit(WalletEvent.DISCONNECTED)

    async def switch_account(self, address: str) -> None:
        address = address.lower()
        if self._info:
            self._info.address = address
            self._mock_address = address

        await self._emit(WalletEvent.ACCOUNT_CHANGED, address)

    async def sign_typed_data(
        self,
        domain: EIP712Domain,
        types: Dict[str, List[Dict[str, str]]],
        value: Dict[str, Any],
    ) -> SignResult:
        self._require_connected()
        self._require_capability(WalletCapability.SIGN_TYPED_DATA)

        self.sign_requests.append(
            TypedDataRequest(domain, types, value, self._mock_address)
        )

        if not self._auto_approve:
            raise SignRequestRejectedError("User rejected the request.")

        if self._fixed_signature is not None:
            return SignResult(signature=self._fixed_signature, recovery_id=0)

        # Mock EIP-712 signature (not cryptographically valid)
        data_hash = hashlib.sha256(
            json.dumps(
                {"domain": domain.to_dict(), "types": types, "value": value},
                sort_keys=True,
            ).encode()
            + self._mock_address.encode()
        ).digest()

        # 65-byte signature: r(32) + s(32) + v(1)
        signature = data_hash + data_hash[:32] + b'\x1c'

        return SignResult(
            signature=signature,
            recovery_id=1,
        )
