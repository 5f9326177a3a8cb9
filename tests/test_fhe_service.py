# tests/test_fhe_service.py
"""MockEncryptionService and EncryptedInputBuilder tests."""

import asyncio

import pytest

from shieldpad.core import EncryptionUnavailableError
from shieldpad.fhe import (
    AccessDeniedError,
    AuthorizationExpiredError,
    AuthorizationReusedError,
    DecryptRequest,
    EncryptedInputBuilder,
    InputBufferError,
    InvalidInputProofError,
    KeypairMismatchError,
    open_sealed,
    seal_to_public_key,
)

from conftest import USER, OTHER_USER

VAULT = "0x" + "5" * 40


def test_sealed_value_opens_with_matching_private_key(service):
    keypair = service.generate_keypair()
    sealed = seal_to_public_key(2_500_000, keypair.public_key)
    assert open_sealed(sealed, keypair.private_key) == 2_500_000


def test_keypairs_are_fresh(service):
    a = service.generate_keypair()
    b = service.generate_keypair()
    assert a.public_key != b.public_key
    assert "private_key" not in repr(a)


def test_builder_binds_input_to_contract_and_user(service):
    builder = EncryptedInputBuilder(service)
    encrypted = asyncio.run(builder.build(VAULT, USER, 10_500_000))

    assert len(encrypted.handles) == 1
    assert encrypted.input_proof.startswith("0x")
    with pytest.raises(InvalidInputProofError):
        service.verify_input(encrypted.handle, encrypted.input_proof, VAULT, OTHER_USER)
    assert service.verify_input(encrypted.handle, encrypted.input_proof, VAULT, USER) == 10_500_000


def test_input_proof_is_single_use(service):
    builder = EncryptedInputBuilder(service)
    encrypted = asyncio.run(builder.build(VAULT, USER, 5))
    service.verify_input(encrypted.handle, encrypted.input_proof, VAULT, USER)
    with pytest.raises(InvalidInputProofError, match="already used"):
        service.verify_input(encrypted.handle, encrypted.input_proof, VAULT, USER)


def test_each_build_is_fresh(service):
    builder = EncryptedInputBuilder(service)
    first = asyncio.run(builder.build(VAULT, USER, 7))
    second = asyncio.run(builder.build(VAULT, USER, 7))
    assert first.handle != second.handle
    assert first.input_proof != second.input_proof


def test_builder_requires_ready_service_and_user(service):
    builder = EncryptedInputBuilder(service)
    with pytest.raises(EncryptionUnavailableError):
        asyncio.run(builder.build(VAULT, None, 1))

    service.set_ready(False)
    with pytest.raises(EncryptionUnavailableError, match="not ready"):
        asyncio.run(builder.build(VAULT, USER, 1))
    assert "create_encrypted_input" not in service.calls

    with pytest.raises(EncryptionUnavailableError):
        asyncio.run(EncryptedInputBuilder(None).build(VAULT, USER, 1))


def test_buffer_rejects_out_of_range_and_double_encrypt(service):
    buffer = service.create_encrypted_input(VAULT, USER)
    with pytest.raises(InputBufferError):
        buffer.add_uint64(2**64)
    with pytest.raises(InputBufferError):
        buffer.add_uint64(-1)
    with pytest.raises(InputBufferError):
        asyncio.run(buffer.encrypt())

    buffer.add_uint64(1)
    asyncio.run(buffer.encrypt())
    with pytest.raises(InputBufferError):
        asyncio.run(buffer.encrypt())


def _decrypt(service, handle, contract, user, signature, start, duration=10):
    keypair = service.generate_keypair()
    return asyncio.run(service.user_decrypt(
        [DecryptRequest(handle, contract)],
        keypair.private_key,
        keypair.public_key,
        signature,
        [contract],
        user,
        start,
        duration,
    ))


def test_user_decrypt_enforces_window_reuse_and_acl(service, clock):
    handle = service.seal(42, USER, VAULT)
    start = int(clock())

    assert _decrypt(service, handle, VAULT, USER, "aa", start) == {handle: 42}

    with pytest.raises(AuthorizationReusedError):
        _decrypt(service, handle, VAULT, USER, "aa", start)

    with pytest.raises(AccessDeniedError):
        _decrypt(service, handle, VAULT, OTHER_USER, "bb", start)

    clock.advance(11)
    with pytest.raises(AuthorizationExpiredError):
        _decrypt(service, handle, VAULT, USER, "cc", start)


def test_user_decrypt_omits_unknown_handles(service, clock):
    assert _decrypt(service, "0x" + "12" * 32, VAULT, USER, "dd", int(clock())) == {}


def test_user_decrypt_rejects_mismatched_keypair(service, clock):
    handle = service.seal(42, USER, VAULT)
    ours = service.generate_keypair()
    theirs = service.generate_keypair()

    with pytest.raises(KeypairMismatchError):
        asyncio.run(service.user_decrypt(
            [DecryptRequest(handle, VAULT)],
            theirs.private_key,
            ours.public_key,
            "ee",
            [VAULT],
            USER,
            int(clock()),
            10,
        ))


def test_authorization_payload_shape(service):
    payload = service.create_authorization_payload("ab" * 32, [VAULT], 1000, 10)
    assert payload.message["contractAddresses"] == [VAULT]
    assert payload.message["startTimestamp"] == "1000"
    assert payload.message["publicKey"] == "0x" + "ab" * 32
    assert list(payload.signing_types()) == ["UserDecryptRequestVerification"]
    assert "EIP712Domain" in payload.types
