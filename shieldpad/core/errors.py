# shieldpad/core/errors.py
"""
ShieldPad Core: Error Kinds

Every failure the orchestration core can surface to a user. Each error
carries an ErrorKind and a message that is safe to show as a status line.

Hierarchy:
    ShieldPadError
    ├── NoIdentityError             - no connected wallet address
    ├── InvalidAmountError          - unparsable / non-positive amount
    ├── EncryptionUnavailableError  - encryption service not ready
    ├── ServiceUnavailableError     - decryption service not ready
    ├── SignatureRejectedError      - typed-data signature declined or failed
    ├── TransactionFailedError      - revert / confirmation failure (verbatim)
    ├── ContractRejectedError       - business-rule revert with reason
    ├── ActionInFlightError         - another action holds the single slot
    └── NothingToDecryptError       - no handle has been read yet
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


# =============================================================================
# Error Kinds
# =============================================================================

class ErrorKind(Enum):
    """Classification of user-visible failures."""
    NO_IDENTITY = "NoIdentity"
    INVALID_AMOUNT = "InvalidAmount"
    ENCRYPTION_UNAVAILABLE = "EncryptionUnavailable"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    SIGNATURE_REJECTED = "SignatureRejected"
    TRANSACTION_FAILED = "TransactionFailed"
    CONTRACT_REJECTED = "ContractRejected"
    ACTION_IN_FLIGHT = "ActionInFlight"
    NOTHING_TO_DECRYPT = "NothingToDecrypt"
    UNEXPECTED = "Unexpected"


# =============================================================================
# Exceptions
# =============================================================================

class ShieldPadError(Exception):
    """Base exception for orchestration core errors."""
    kind: ErrorKind = ErrorKind.UNEXPECTED
    default_message: str = "Unexpected error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NoIdentityError(ShieldPadError):
    """No connected user identity."""
    kind = ErrorKind.NO_IDENTITY
    default_message = "Connect a wallet first."


class InvalidAmountError(ShieldPadError):
    """Amount text is empty, malformed, or not strictly positive."""
    kind = ErrorKind.INVALID_AMOUNT
    default_message = "Invalid amount."


class EncryptionUnavailableError(ShieldPadError):
    """Encryption service session not ready, or no user to bind input to."""
    kind = ErrorKind.ENCRYPTION_UNAVAILABLE
    default_message = "Encryption service not ready yet."


class ServiceUnavailableError(ShieldPadError):
    """Decryption service session not ready."""
    kind = ErrorKind.SERVICE_UNAVAILABLE
    default_message = "Encryption service not ready yet."


class SignatureRejectedError(ShieldPadError):
    """Signer declined or failed the authorization signature."""
    kind = ErrorKind.SIGNATURE_REJECTED
    default_message = "Signature request rejected."


class TransactionFailedError(ShieldPadError):
    """Contract call reverted or confirmation failed."""
    kind = ErrorKind.TRANSACTION_FAILED
    default_message = "Transaction failed."


class ContractRejectedError(ShieldPadError):
    """Contract refused the call for a business reason."""
    kind = ErrorKind.CONTRACT_REJECTED
    default_message = "Contract rejected the call."

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(reason)


class ActionInFlightError(ShieldPadError):
    """Another action already holds the pending slot."""
    kind = ErrorKind.ACTION_IN_FLIGHT
    default_message = "Another action is still in progress."


class NothingToDecryptError(ShieldPadError):
    """Decrypt requested before any handle was read."""
    kind = ErrorKind.NOTHING_TO_DECRYPT
    default_message = "Nothing to decrypt yet."

