# shieldpad/fhe/inputs.py
"""
ShieldPad FHE: EncryptedInputBuilder

Turns a plaintext minor-unit amount into a ciphertext handle and proof for
one target contract and one user. The result is bound to that exact context
and is meant for the very next transaction only; the builder never caches.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.errors import EncryptionUnavailableError
from ..core.handles import shorten_handle
from .service import EncryptedInput, EncryptionService


logger = logging.getLogger(__name__)


class EncryptedInputBuilder:
    """Builds single-use encrypted uint64 inputs."""

    def __init__(self, service: Optional[EncryptionService]):
        self._service = service

    async def build(
        self,
        target_contract: str,
        user: Optional[str],
        amount: int,
    ) -> EncryptedInput:
        """
        Encrypt `amount` for `target_contract` on behalf of `user`.

        The amount must already be a parsed, positive minor-unit integer.

        Raises:
            EncryptionUnavailableError: No ready service session or no user
        """
        if self._service is None or not self._service.is_ready or not user:
            raise EncryptionUnavailableError()

        buffer = self._service.create_encrypted_input(target_contract, user)
        buffer.add_uint64(amount)
        encrypted = await buffer.encrypt()

        logger.debug(
            "built encrypted input %s for %s",
            shorten_handle(encrypted.handles[0]) if encrypted.handles else "-",
            target_contract,
        )
        return encrypted
