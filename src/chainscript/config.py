"""
Connection configuration for chainscript.

A run needs two secrets-bearing values: the JSON-RPC endpoint and the
private key that signs transactions.  Both are read once at process start
(from explicit arguments, the environment, or a ``.env`` file) into an
immutable :class:`ConnectionConfig` that is passed to everything else.

Keys are never printed in full; use :func:`ConnectionConfig.masked_key`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_keys.exceptions import ValidationError as KeyValidationError

from .errors import ConfigError, InvalidKeyError
from .utils import mask_secret, parse_quantity


DEFAULT_ENV_FILE = Path(".env")
DEFAULT_KEY_ENV = "DEPLOYER"
RPC_URL_ENV = "RPC_URL"
CHAIN_ID_ENV = "CHAIN_ID"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ConnectionConfig:
    rpc_url: str
    signing_key: str = field(repr=False)
    chain_id: Optional[int] = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(
        cls,
        key_env: str = DEFAULT_KEY_ENV,
        env_path: Optional[Path] = None,
        rpc_url: Optional[str] = None,
    ) -> "ConnectionConfig":
        """
        Build a config from environment variables.

        Args:
            key_env: Name of the variable holding the signing key
                     (``DEPLOYER``, ``ACCOUNT2``, ...)
            env_path: Optional .env file; real environment variables win
            rpc_url: Explicit RPC URL overriding ``RPC_URL``

        Raises:
            ConfigError: If the RPC URL or the key variable is missing
        """
        load_env_file(env_path)

        url = rpc_url or os.environ.get(RPC_URL_ENV)
        if not url:
            raise ConfigError(f"{RPC_URL_ENV} not set. Pass --rpc-url or add it to .env")

        key = os.environ.get(key_env)
        if not key:
            raise ConfigError(f"{key_env} not set. Add the signing key to .env or the environment")

        chain_id = os.environ.get(CHAIN_ID_ENV)
        try:
            expected_chain = parse_quantity(chain_id) if chain_id else None
        except ValueError:
            raise ConfigError(f"{CHAIN_ID_ENV} must be an integer, got {chain_id!r}") from None
        return cls(
            rpc_url=url,
            signing_key=normalize_private_key(key),
            chain_id=expected_chain,
        )

    def masked_key(self) -> str:
        return mask_secret(self.signing_key)

    def account(self) -> LocalAccount:
        return load_account(self.signing_key)


def load_env_file(env_path: Optional[Path] = None) -> None:
    """Load a .env file without overriding variables already set."""
    path = env_path or DEFAULT_ENV_FILE
    if path.exists():
        load_dotenv(path, override=False)


def normalize_private_key(private_key: str) -> str:
    private_key = private_key.strip()
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    return private_key


def load_account(private_key: str) -> LocalAccount:
    """
    Get an eth-account LocalAccount from a private key.

    Raises:
        InvalidKeyError: If the key is not a valid secp256k1 private key
    """
    try:
        return Account.from_key(normalize_private_key(private_key))
    except (ValueError, TypeError, KeyValidationError) as exc:
        raise InvalidKeyError("Signing key is not a valid 32-byte secp256k1 private key") from exc
