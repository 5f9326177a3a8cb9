# shieldpad/__init__.py
"""
ShieldPad: Confidential Token Orchestration Core v0.1

Client-side core for confidential ERC20-like tokens whose balances live
on-chain as FHE ciphertext handles. Builds encrypted inputs, runs the
user-decryption handshake, and sequences wallet actions through a
single-flight state machine.

Submodules:
    core/          - AmountCodec, handle helpers, HandleCache, error kinds
    adapters/      - Wallet identity and EIP-712 signing
    fhe/           - Relayer boundary
                     - EncryptedInputBuilder: amount -> (handle, proof)
                     - DecryptionSession: handle -> plaintext
    chain/         - cZAMA / cUSDT / ShieldPadVault contract boundary
                     (in-memory mock suite, web3 bindings)
    orchestrator/  - ActionOrchestrator, SessionState, action model
    config         - ShieldPadConfig (SHIELDPAD_* environment)

Quick Start:
    from shieldpad import (
        ActionOrchestrator, MockWalletAdapter, MockEncryptionService,
        ShieldPadConfig, deploy_mock_suite, Token, TrackedValue,
    )

    config = ShieldPadConfig()
    service = MockEncryptionService(chain_id=config.chain_id)
    contracts = deploy_mock_suite(
        service, config.vault_address, config.czama_address, config.cusdt_address,
    )
    wallet = MockWalletAdapter(chain_id=config.chain_id)
    await wallet.connect()

    orchestrator = ActionOrchestrator(wallet, service, contracts, config)
    await orchestrator.claim(Token.CZAMA)
    await orchestrator.authorize()
    await orchestrator.stake("100")
    await orchestrator.wait_for_refresh()

    result = await orchestrator.decrypt_tracked(TrackedValue.STAKED)
    print(result.value)  # "100"

Updated: 2026-10-19
"""

from .config import ShieldPadConfig, ConfigError

from .core import (
    AmountCodec,
    HandleCache,
    ZERO_HANDLE,
    is_zero_handle,
    shorten_handle,
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

from .adapters import (
    WalletAdapter,
    MockWalletAdapter,
    LocalKeyWalletAdapter,
    EIP712Domain,
    SignResult,
    WalletEvent,
)

from .fhe import (
    EncryptionService,
    MockEncryptionService,
    EncryptedInput,
    EncryptedInputBuilder,
    DecryptionSession,
    Keypair,
    AuthorizationPayload,
)

from .chain import (
    ConfidentialToken,
    ShieldVault,
    ContractSuite,
    ContractRevertError,
    deploy_mock_suite,
    connect_contracts,
)

from .orchestrator import (
    ActionOrchestrator,
    SessionState,
    OrchestratorEvent,
    ActionKind,
    ActionState,
    ActionResult,
    Token,
    TrackedValue,
    ClaimAction,
    AuthorizeAction,
    AmountAction,
    DecryptAction,
)

__all__ = [
    "ShieldPadConfig",
    "ConfigError",
    "AmountCodec",
    "HandleCache",
    "ZERO_HANDLE",
    "is_zero_handle",
    "shorten_handle",
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
    "WalletAdapter",
    "MockWalletAdapter",
    "LocalKeyWalletAdapter",
    "EIP712Domain",
    "SignResult",
    "WalletEvent",
    "EncryptionService",
    "MockEncryptionService",
    "EncryptedInput",
    "EncryptedInputBuilder",
    "DecryptionSession",
    "Keypair",
    "AuthorizationPayload",
    "ConfidentialToken",
    "ShieldVault",
    "ContractSuite",
    "ContractRevertError",
    "deploy_mock_suite",
    "connect_contracts",
    "ActionOrchestrator",
    "SessionState",
    "OrchestratorEvent",
    "ActionKind",
    "ActionState",
    "ActionResult",
    "Token",
    "TrackedValue",
    "ClaimAction",
    "AuthorizeAction",
    "AmountAction",
    "DecryptAction",
]

__version__ = "0.1.0"
