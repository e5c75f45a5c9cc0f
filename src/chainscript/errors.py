from __future__ import annotations

from typing import Any, Optional

from .models import TxState


class ChainscriptError(RuntimeError):
    exit_code: int = 1

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConfigError(ChainscriptError):
    exit_code = 2


class InvalidKeyError(ChainscriptError):
    exit_code = 3


class InvalidInterfaceError(ChainscriptError):
    exit_code = 4


class ConnectivityError(ChainscriptError):
    exit_code = 5


class RpcError(ChainscriptError):
    """The node answered with a JSON-RPC error object."""

    exit_code = 6

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class RevertError(ChainscriptError):
    """Execution reverted, either in eth_call / eth_estimateGas or on chain."""

    exit_code = 7

    def __init__(self, reason: Optional[str] = None, data: Optional[str] = None) -> None:
        super().__init__(f"execution reverted: {reason}" if reason else "execution reverted")
        self.reason = reason
        self.data = data


class InsufficientFundsError(ChainscriptError):
    exit_code = 8

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.required = required
        self.available = available


class TransactionFailedError(ChainscriptError):
    exit_code = 9
    state = TxState.REVERTED

    def __init__(self, receipt: Any) -> None:
        super().__init__(
            f"Transaction {receipt.tx_hash} reverted in block {receipt.block_number}"
        )
        self.receipt = receipt


class ConfirmationTimeoutError(ChainscriptError, TimeoutError):
    """No receipt within the wait window; the transaction may have been dropped."""

    exit_code = 10
    state = TxState.DROPPED

    def __init__(self, tx_hash: str, timeout: float) -> None:
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout:g}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


__all__ = [
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
