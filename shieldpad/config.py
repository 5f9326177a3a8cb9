# shieldpad/config.py
"""
ShieldPad Configuration

Deployment addresses and protocol constants. Defaults target the Sepolia
deployment; every field can be overridden through SHIELDPAD_* environment
variables.

Environment:
    SHIELDPAD_CHAIN_ID           Chain ID (default: 11155111)
    SHIELDPAD_VAULT_ADDRESS      ShieldPadVault address
    SHIELDPAD_CZAMA_ADDRESS      ConfidentialZama token address
    SHIELDPAD_CUSDT_ADDRESS      ConfidentialUSDT token address
    SHIELDPAD_TOKEN_DECIMALS     Token decimals (default: 6)
    SHIELDPAD_DECRYPT_DURATION   Authorization validity window, seconds
    SHIELDPAD_OPERATOR_GRANT     Vault operator grant, seconds
    SHIELDPAD_RPC_URL            JSON-RPC endpoint for the web3 bindings
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional


# =============================================================================
# Defaults
# =============================================================================

SEPOLIA_CHAIN_ID = 11155111

DEFAULT_VAULT_ADDRESS = "0x" + "5" * 40
DEFAULT_CZAMA_ADDRESS = "0x" + "c" * 40
DEFAULT_CUSDT_ADDRESS = "0x" + "d" * 40

DEFAULT_TOKEN_DECIMALS = 6
DEFAULT_DECRYPT_DURATION = 10            # seconds
DEFAULT_OPERATOR_GRANT = 30 * 24 * 60 * 60  # 30 days

ENV_PREFIX = "SHIELDPAD_"


class ConfigError(ValueError):
    """Invalid configuration value."""
    pass


# =============================================================================
# ShieldPadConfig
# =============================================================================

@dataclass(frozen=True)
class ShieldPadConfig:
    """Static configuration shared by the orchestrator and its collaborators."""
    chain_id: int = SEPOLIA_CHAIN_ID
    vault_address: str = DEFAULT_VAULT_ADDRESS
    czama_address: str = DEFAULT_CZAMA_ADDRESS
    cusdt_address: str = DEFAULT_CUSDT_ADDRESS
    token_decimals: int = DEFAULT_TOKEN_DECIMALS
    decrypt_duration_seconds: int = DEFAULT_DECRYPT_DURATION
    operator_grant_seconds: int = DEFAULT_OPERATOR_GRANT
    rpc_url: Optional[str] = None

    def __post_init__(self):
        if self.token_decimals < 0:
            raise ConfigError("token_decimals must be >= 0")
        if self.decrypt_duration_seconds <= 0:
            raise ConfigError("decrypt_duration_seconds must be > 0")
        if self.operator_grant_seconds <= 0:
            raise ConfigError("operator_grant_seconds must be > 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ShieldPadConfig:
        """Build a config from SHIELDPAD_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        def _get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value else None

        def _int(name: str, default: int) -> int:
            raw = _get(name)
            if raw is None:
                return default
            try:
                return int(raw, 0)
            except ValueError:
                raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")

        return cls(
            chain_id=_int("CHAIN_ID", SEPOLIA_CHAIN_ID),
            vault_address=_get("VAULT_ADDRESS") or DEFAULT_VAULT_ADDRESS,
            czama_address=_get("CZAMA_ADDRESS") or DEFAULT_CZAMA_ADDRESS,
            cusdt_address=_get("CUSDT_ADDRESS") or DEFAULT_CUSDT_ADDRESS,
            token_decimals=_int("TOKEN_DECIMALS", DEFAULT_TOKEN_DECIMALS),
            decrypt_duration_seconds=_int("DECRYPT_DURATION", DEFAULT_DECRYPT_DURATION),
            operator_grant_seconds=_int("OPERATOR_GRANT", DEFAULT_OPERATOR_GRANT),
            rpc_url=_get("RPC_URL"),
        )

    def with_addresses(self, vault: str, czama: str, cusdt: str) -> ShieldPadConfig:
        """Copy with deployed contract addresses."""
        return replace(self, vault_address=vault, czama_address=czama, cusdt_address=cusdt)
