__all__ = [
    # Config
    "ConnectionConfig",
    "load_account",
    # Models
    "CallRequest",
    "CallResult",
    "Overrides",
    "Receipt",
    "TxState",
    # Interfaces
    "ContractDescriptor",
    "decode_revert_reason",
    "parse_signature",
    # Clients
    "Client",
    "JsonRpcClient",
    # Submitter
    "BoundContract",
    "Connection",
    "bind",
    "connect",
    "contract_address_for",
    "deploy",
    "invoke",
    "simulate",
    "wait_for_confirmation",
    # Batch helpers
    "build_token_uris",
    # Errors
    "ChainscriptError",
    "ConfigError",
    "ConfirmationTimeoutError",
    "ConnectivityError",
    "InsufficientFundsError",
    "InvalidInterfaceError",
    "InvalidKeyError",
    "RevertError",
    "RpcError",
    "TransactionFailedError",
]

from .config import ConnectionConfig, load_account
from .errors import (
    ChainscriptError,
    ConfigError,
    ConfirmationTimeoutError,
    ConnectivityError,
    InsufficientFundsError,
    InvalidInterfaceError,
    InvalidKeyError,
    RevertError,
    RpcError,
    TransactionFailedError,
)
from .models import CallRequest, CallResult, Overrides, Receipt, TxState
from .rpc.abi import ContractDescriptor, decode_revert_reason, parse_signature
from .rpc.client import Client, JsonRpcClient
from .rpc.tx import (
    BoundContract,
    Connection,
    bind,
    connect,
    contract_address_for,
    deploy,
    invoke,
    simulate,
    wait_for_confirmation,
)
from .commands.batch_mint import build_token_uris
