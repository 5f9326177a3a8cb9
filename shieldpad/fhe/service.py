# shieldpad/fhe/service.py
"""
ShieldPad FHE: Encryption / Decryption Service Boundary

The orchestration core never encrypts or decrypts by itself. It talks to an
external FHE relayer session through the EncryptionService interface:

    create_encrypted_input(contract, user) -> EncryptedInputBuffer
        .add_uint64(value)
        .encrypt() -> EncryptedInput(handles, input_proof)
    generate_keypair() -> Keypair
    create_authorization_payload(public_key, contracts, start, duration)
        -> AuthorizationPayload(domain, types, message)
    user_decrypt(requests, private_key, public_key, signature,
                 contracts, user, start, duration) -> {handle: value}

MockEncryptionService is an in-memory relayer for tests and local runs. It
keeps plaintexts behind opaque handles, enforces single-use input proofs,
per-handle access lists, the authorization window and signature single use,
and returns decrypted values the way a real relayer does: re-encrypted to
the caller's ephemeral X25519 public key, then opened with the private key.

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from ..core.amounts import UINT64_MAX
from ..core.handles import handle_from_bytes, normalize_handle, shorten_handle


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

AUTH_PRIMARY_TYPE = "UserDecryptRequestVerification"
AUTH_DOMAIN_NAME = "Decryption"
AUTH_DOMAIN_VERSION = "1"

# Verifying contract of the decryption authorization domain
DEFAULT_DECRYPTION_VERIFIER = "0x" + "b" * 40

REENCRYPT_INFO = b"shieldpad-user-decrypt-v1"
X25519_KEY_SIZE = 32
AESGCM_NONCE_SIZE = 12


# =============================================================================
# Types
# =============================================================================

@dataclass
class EncryptedInput:
    """
    Ciphertext handles plus the proof binding them to (contract, user).

    Single use: submit it in the very next transaction and drop it.
    """
    handles: List[str]
    input_proof: str
    contract: str = ""
    user: str = ""

    @property
    def handle(self) -> str:
        """First (and for single-value inputs, only) handle."""
        return self.handles[0]


@dataclass
class Keypair:
    """Ephemeral decryption keypair, hex encoded without 0x."""
    public_key: str
    private_key: str = field(repr=False)


@dataclass
class AuthorizationPayload:
    """EIP-712 typed data the wallet signs to authorize a user decryption."""
    domain: Dict[str, object]
    types: Dict[str, List[Dict[str, str]]]
    message: Dict[str, object]
    primary_type: str = AUTH_PRIMARY_TYPE

    def signing_types(self) -> Dict[str, List[Dict[str, str]]]:
        """Types to hand to the signer: the primary type only."""
        return {self.primary_type: self.types[self.primary_type]}


@dataclass
class DecryptRequest:
    """One handle to decrypt and the contract holding it."""
    handle: str
    contract_address: str

    def to_dict(self) -> Dict[str, str]:
        return {"handle": self.handle, "contractAddress": self.contract_address}


# =============================================================================
# Exceptions
# =============================================================================

class FheServiceError(Exception):
    """Base relayer/service error."""
    pass


class InputBufferError(FheServiceError):
    """Encrypted input buffer misuse (bad value, empty, finalized twice)."""
    pass


class InvalidInputProofError(FheServiceError):
    """Input proof unknown, already consumed, or bound to another context."""
    pass


class AuthorizationExpiredError(FheServiceError):
    """Authorization window closed before the request arrived."""
    pass


class AuthorizationReusedError(FheServiceError):
    """Signature was already used for an earlier decryption."""
    pass


class AccessDeniedError(FheServiceError):
    """User is not allowed to decrypt the handle."""
    pass


class KeypairMismatchError(FheServiceError):
    """Private key does not open values sealed to the authorized public key."""
    pass


# =============================================================================
# Interfaces
# =============================================================================

class EncryptedInputBuffer(ABC):
    """Buffer of plaintext values bound to one (contract, user) context."""

    @abstractmethod
    def add_uint64(self, value: int) -> EncryptedInputBuffer:
        """Append a 64-bit unsigned value."""
        pass

    @abstractmethod
    async def encrypt(self) -> EncryptedInput:
        """Finalize the buffer into handles + proof."""
        pass


class EncryptionService(ABC):
    """FHE relayer session used by the orchestration core."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """True once the relayer session is initialized."""
        pass

    @abstractmethod
    def create_encrypted_input(self, contract: str, user: str) -> EncryptedInputBuffer:
        pass

    @abstractmethod
    def generate_keypair(self) -> Keypair:
        pass

    @abstractmethod
    def create_authorization_payload(
        self,
        public_key: str,
        contracts: Sequence[str],
        start: int,
        duration: int,
    ) -> AuthorizationPayload:
        pass

    @abstractmethod
    async def user_decrypt(
        self,
        requests: Sequence[DecryptRequest],
        private_key: str,
        public_key: str,
        signature: str,
        contracts: Sequence[str],
        user: str,
        start: int,
        duration: int,
    ) -> Dict[str, int]:
        """
        Decrypt handles the user is allowed to see.

        Returns:
            Mapping of handle (as requested) to plaintext integer
        """
        pass


# =============================================================================
# Re-encryption helpers
# =============================================================================

def _derive_key(shared: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=REENCRYPT_INFO,
    ).derive(shared)


def seal_to_public_key(value: int, public_key_hex: str) -> bytes:
    """
    Encrypt a uint64 to an X25519 public key.

    Layout: ephemeral_pub(32) || nonce(12) || AES-GCM(value_be64)
    """
    recipient = X25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
    ephemeral = X25519PrivateKey.generate()
    key = _derive_key(ephemeral.exchange(recipient))
    nonce = secrets.token_bytes(AESGCM_NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, value.to_bytes(8, "big"), None)
    eph_pub = ephemeral.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return eph_pub + nonce + ct


def open_sealed(sealed: bytes, private_key_hex: str) -> int:
    """Inverse of seal_to_public_key."""
    eph_pub = X25519PublicKey.from_public_bytes(sealed[:X25519_KEY_SIZE])
    nonce = sealed[X25519_KEY_SIZE:X25519_KEY_SIZE + AESGCM_NONCE_SIZE]
    ct = sealed[X25519_KEY_SIZE + AESGCM_NONCE_SIZE:]
    private = X25519PrivateKey.from_private_bytes(bytes.fromhex(private_key_hex))
    key = _derive_key(private.exchange(eph_pub))
    return int.from_bytes(AESGCM(key).decrypt(nonce, ct, None), "big")


# =============================================================================
# Mock Service (for testing)
# =============================================================================

@dataclass
class _RegisteredInput:
    handles: List[str]
    contract: str
    user: str
    consumed: bool = False


class MockInputBuffer(EncryptedInputBuffer):
    """Input buffer backed by MockEncryptionService."""

    def __init__(self, service: MockEncryptionService, contract: str, user: str):
        self._service = service
        self._contract = contract
        self._user = user
        self._values: List[int] = []
        self._finalized = False

    def add_uint64(self, value: int) -> MockInputBuffer:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InputBufferError(f"uint64 value must be an int, got {type(value).__name__}")
        if not 0 <= value <= UINT64_MAX:
            raise InputBufferError(f"Value out of uint64 range: {value}")
        self._values.append(value)
        return self

    async def encrypt(self) -> EncryptedInput:
        if self._finalized:
            raise InputBufferError("Input buffer already encrypted")
        if not self._values:
            raise InputBufferError("Input buffer is empty")
        self._finalized = True
        return self._service._finalize_input(self._contract, self._user, self._values)


class MockEncryptionService(EncryptionService):
    """
    In-memory FHE relayer.

    Plaintexts live in a dict behind random handles. Contracts in the same
    process use verify_input() / seal() / value_of() in place of on-chain
    FHE operations. Each public call is appended to `calls`.
    """

    def __init__(
        self,
        chain_id: int = 1,
        ready: bool = True,
        clock: Callable[[], float] = time.time,
        verifying_contract: str = DEFAULT_DECRYPTION_VERIFIER,
    ):
        self._chain_id = chain_id
        self._ready = ready
        self._clock = clock
        self._verifying_contract = verifying_contract

        self._values: Dict[str, int] = {}
        self._acl: Dict[str, Set[str]] = {}
        self._inputs: Dict[str, _RegisteredInput] = {}
        self._used_signatures: Set[str] = set()
        self._counter = 0

        self.calls: List[str] = []

    # =========================================================================
    # Session state
    # =========================================================================

    @property
    def is_ready(self) -> bool:
        return self._ready

    def set_ready(self, ready: bool) -> None:
        self._ready = ready

    def _require_ready(self) -> None:
        if not self._ready:
            raise FheServiceError("Relayer session not initialized")

    # =========================================================================
    # Ciphertext store
    # =========================================================================

    def _new_handle(self) -> str:
        self._counter += 1
        digest = hashlib.sha256(
            b"shieldpad-handle"
            + self._counter.to_bytes(8, "big")
            + secrets.token_bytes(16)
        ).digest()
        return handle_from_bytes(digest)

    def store(self, handle: str, value: int, *allowed: str) -> str:
        """Register a plaintext under an explicit handle."""
        key = normalize_handle(handle)
        self._values[key] = int(value)
        self._acl.setdefault(key, set()).update(a.lower() for a in allowed)
        return handle

    def seal(self, value: int, *allowed: str) -> str:
        """Register a plaintext under a fresh handle."""
        return self.store(self._new_handle(), value, *allowed)

    def allow(self, handle: str, address: str) -> None:
        self._acl.setdefault(normalize_handle(handle), set()).add(address.lower())

    def value_of(self, handle: str) -> int:
        """Plaintext behind a handle; the zero handle and unknown handles are 0."""
        return self._values.get(normalize_handle(handle), 0)

    def _finalize_input(self, contract: str, user: str, values: List[int]) -> EncryptedInput:
        self.calls.append("encrypt")
        self._require_ready()
        handles = [self.seal(v, user, contract) for v in values]
        proof = hashlib.sha256(
            b"shieldpad-input-proof"
            + "".join(handles).encode()
            + contract.lower().encode()
            + user.lower().encode()
            + secrets.token_bytes(16)
        ).hexdigest()
        proof = "0x" + proof
        self._inputs[proof] = _RegisteredInput(handles, contract.lower(), user.lower())
        logger.debug("encrypted input %s for %s", shorten_handle(handles[0]), contract)
        return EncryptedInput(handles=handles, input_proof=proof, contract=contract, user=user)

    def verify_input(self, handle: str, proof: str, contract: str, user: str) -> int:
        """
        Check and consume an input proof, returning the plaintext.

        Raises:
            InvalidInputProofError: unknown, replayed or mis-bound proof
        """
        entry = self._inputs.get(proof)
        if entry is None:
            raise InvalidInputProofError("Unknown input proof")
        if entry.consumed:
            raise InvalidInputProofError("Input proof already used")
        if entry.contract != contract.lower() or entry.user != user.lower():
            raise InvalidInputProofError("Input proof bound to another context")
        if normalize_handle(handle) not in [normalize_handle(h) for h in entry.handles]:
            raise InvalidInputProofError("Handle not covered by proof")
        entry.consumed = True
        return self.value_of(handle)

    # =========================================================================
    # EncryptionService
    # =========================================================================

    def create_encrypted_input(self, contract: str, user: str) -> MockInputBuffer:
        self.calls.append("create_encrypted_input")
        self._require_ready()
        return MockInputBuffer(self, contract, user)

    def generate_keypair(self) -> Keypair:
        self.calls.append("generate_keypair")
        private = X25519PrivateKey.generate()
        return Keypair(
            public_key=private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex(),
            private_key=private.private_bytes(
                Encoding.Raw, PrivateFormat.Raw, NoEncryption()
            ).hex(),
        )

    def create_authorization_payload(
        self,
        public_key: str,
        contracts: Sequence[str],
        start: int,
        duration: int,
    ) -> AuthorizationPayload:
        self.calls.append("create_authorization_payload")
        domain = {
            "name": AUTH_DOMAIN_NAME,
            "version": AUTH_DOMAIN_VERSION,
            "chainId": self._chain_id,
            "verifyingContract": self._verifying_contract,
        }
        types = {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            AUTH_PRIMARY_TYPE: [
                {"name": "publicKey", "type": "bytes"},
                {"name": "contractAddresses", "type": "address[]"},
                {"name": "startTimestamp", "type": "uint256"},
                {"name": "durationSeconds", "type": "uint256"},
            ],
        }
        message = {
            "publicKey": "0x" + public_key,
            "contractAddresses": list(contracts),
            "startTimestamp": str(start),
            "durationSeconds": str(duration),
        }
        return AuthorizationPayload(domain=domain, types=types, message=message)

    async def user_decrypt(
        self,
        requests: Sequence[DecryptRequest],
        private_key: str,
        public_key: str,
        signature: str,
        contracts: Sequence[str],
        user: str,
        start: int,
        duration: int,
    ) -> Dict[str, int]:
        """
        Seal each allowed value to `public_key`, then open it with
        `private_key` and return cleartext, as the relayer SDK does.

        The round trip only proves the two halves of the keypair belong
        together; a mismatched private key raises KeypairMismatchError.
        """
        self.calls.append("user_decrypt")
        self._require_ready()

        now = self._clock()
        if now > int(start) + int(duration):
            raise AuthorizationExpiredError("Authorization window expired")
        if not signature:
            raise FheServiceError("Missing authorization signature")
        if signature in self._used_signatures:
            raise AuthorizationReusedError("Authorization signature already used")
        self._used_signatures.add(signature)

        allowed_contracts = {c.lower() for c in contracts}
        result: Dict[str, int] = {}
        for req in requests:
            if req.contract_address.lower() not in allowed_contracts:
                raise AccessDeniedError(
                    f"Contract {req.contract_address} not covered by authorization"
                )
            key = normalize_handle(req.handle)
            if key not in self._values:
                continue
            if user.lower() not in self._acl.get(key, set()):
                raise AccessDeniedError(f"User not allowed to decrypt {shorten_handle(req.handle)}")

            sealed = seal_to_public_key(self._values[key], public_key)
            try:
                result[req.handle] = open_sealed(sealed, private_key)
            except InvalidTag:
                raise KeypairMismatchError("Private key does not match the authorized public key")

        return result
