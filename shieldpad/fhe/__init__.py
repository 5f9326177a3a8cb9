# shieldpad/fhe/__init__.py
"""
ShieldPad FHE: encrypted inputs and user decryption over an FHE relayer.

Components:
    EncryptionService      - Relayer session interface
    MockEncryptionService  - In-memory relayer for tests
    EncryptedInputBuilder  - amount -> (handle, proof)
    DecryptionSession      - handle -> plaintext via signed authorization
"""

from .service import (
    EncryptionService,
    EncryptedInputBuffer,
    MockEncryptionService,
    MockInputBuffer,
    EncryptedInput,
    Keypair,
    AuthorizationPayload,
    DecryptRequest,
    FheServiceError,
    InputBufferError,
    InvalidInputProofError,
    AuthorizationExpiredError,
    AuthorizationReusedError,
    AccessDeniedError,
    KeypairMismatchError,
    AUTH_PRIMARY_TYPE,
    seal_to_public_key,
    open_sealed,
)
from .inputs import EncryptedInputBuilder
from .decrypt import DecryptionSession, DEFAULT_DURATION_SECONDS

__all__ = [
    "EncryptionService",
    "EncryptedInputBuffer",
    "MockEncryptionService",
    "MockInputBuffer",
    "EncryptedInput",
    "Keypair",
    "AuthorizationPayload",
    "DecryptRequest",
    "FheServiceError",
    "InputBufferError",
    "InvalidInputProofError",
    "AuthorizationExpiredError",
    "AuthorizationReusedError",
    "AccessDeniedError",
    "KeypairMismatchError",
    "AUTH_PRIMARY_TYPE",
    "seal_to_public_key",
    "open_sealed",
    "EncryptedInputBuilder",
    "DecryptionSession",
    "DEFAULT_DURATION_SECONDS",
]
