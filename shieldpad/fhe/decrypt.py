# shieldpad/fhe/decrypt.py
"""
ShieldPad FHE: DecryptionSession

User-decryption handshake for one ciphertext handle:

    1. zero / absent handle     -> "0", no signer or service interaction
    2. service ready?           -> ServiceUnavailableError otherwise
    3. fresh ephemeral keypair
    4. authorization payload    [contract], start = now, fixed window
    5. wallet signature         -> SignatureRejectedError on refusal/failure
    6. service user_decrypt     (keypair, signature, window)
    7. value for the handle     (0 when the service omits it)
    8. AmountCodec.format

Keypair, payload and signature live only for the duration of one call.
Nothing is retried and nothing is cached here; the caller writes the
HandleCache once this returns.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..adapters.base import EIP712Domain, WalletAdapter
from ..core.amounts import AmountCodec
from ..core.errors import (
    NoIdentityError,
    ServiceUnavailableError,
    SignatureRejectedError,
)
from ..core.handles import is_zero_handle, normalize_handle, shorten_handle
from .service import DecryptRequest, EncryptionService


logger = logging.getLogger(__name__)


DEFAULT_DURATION_SECONDS = 10


class DecryptionSession:
    """Runs the user-decryption handshake against an EncryptionService."""

    def __init__(
        self,
        service: Optional[EncryptionService],
        codec: Optional[AmountCodec] = None,
        duration_seconds: int = DEFAULT_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._service = service
        self._codec = codec or AmountCodec()
        self._duration = duration_seconds
        self._clock = clock

    async def decrypt(
        self,
        handle: Optional[str],
        contract: str,
        signer: WalletAdapter,
        user: Optional[str],
    ) -> str:
        """
        Recover the plaintext behind `handle` as a decimal string.

        Args:
            handle: Ciphertext handle (None or zero handle short-circuits)
            contract: Contract that owns the handle
            signer: Wallet used to sign the authorization
            user: Address the decryption is performed for

        Returns:
            Formatted plaintext amount
        """
        if not handle or is_zero_handle(handle):
            return "0"

        service = self._service
        if service is None or not service.is_ready:
            raise ServiceUnavailableError()
        if not user:
            raise NoIdentityError()

        keypair = service.generate_keypair()
        start = int(self._clock())
        contracts = [contract]
        payload = service.create_authorization_payload(
            keypair.public_key, contracts, start, self._duration
        )

        try:
            signed = await signer.sign_typed_data(
                EIP712Domain.from_dict(payload.domain),
                payload.signing_types(),
                payload.message,
            )
        except Exception as e:
            logger.info("decrypt authorization not signed: %s", e)
            raise SignatureRejectedError(str(e) or None)

        signature = signed.hex
        if signature.startswith("0x"):
            signature = signature[2:]

        logger.debug("user_decrypt %s on %s", shorten_handle(handle), contract)
        result = await service.user_decrypt(
            [DecryptRequest(handle=handle, contract_address=contract)],
            keypair.private_key,
            keypair.public_key,
            signature,
            contracts,
            user,
            start,
            self._duration,
        )

        raw = result.get(handle)
        if raw is None:
            raw = result.get(normalize_handle(handle), 0)
        return self._codec.format(int(raw))
