# shieldpad/core/__init__.py
"""
ShieldPad Core: amounts, handles, decrypted-value cache and error kinds.
"""

from .amounts import AmountCodec, DEFAULT_DECIMALS, UINT64_MAX
from .cache import HandleCache, CacheEntry
from .handles import (
    ZERO_HANDLE,
    HANDLE_SIZE,
    normalize_handle,
    is_zero_handle,
    shorten_handle,
    handle_from_bytes,
)
from .errors import (
    ErrorKind,
    ShieldPadError,
    NoIdentityError,
    InvalidAmountError,
    EncryptionUnavailableError,
    ServiceUnavailableError,
    SignatureRejectedError,
    TransactionFailedError,
    ContractRejectedError,
    ActionInFlightError,
    NothingToDecryptError,
)

__all__ = [
    "AmountCodec",
    "DEFAULT_DECIMALS",
    "UINT64_MAX",
    "HandleCache",
    "CacheEntry",
    "ZERO_HANDLE",
    "HANDLE_SIZE",
    "normalize_handle",
    "is_zero_handle",
    "shorten_handle",
    "handle_from_bytes",
    "ErrorKind",
    "ShieldPadError",
    "NoIdentityError",
    "InvalidAmountError",
    "EncryptionUnavailableError",
    "ServiceUnavailableError",
    "SignatureRejectedError",
    "TransactionFailedError",
    "ContractRejectedError",
    "ActionInFlightError",
    "NothingToDecryptError",
]
