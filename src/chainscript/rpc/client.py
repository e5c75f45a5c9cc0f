"""
JSON-RPC Client for EVM chains.

Lightweight alternative to web3.py: uses httpx for HTTP and speaks the
handful of ``eth_*`` methods a deploy / mint / call script needs.

:class:`Client` is the capability interface the submitter depends on;
:class:`JsonRpcClient` is the httpx implementation.  Tests substitute an
in-memory client with the same methods.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx
from eth_utils import is_hex

from ..errors import ConnectivityError, InsufficientFundsError, RevertError, RpcError
from ..utils import hex_to_int

logger = logging.getLogger(__name__)

# Geth / Erigon / Anvil all use code 3 for eth_call reverts carrying data
REVERT_ERROR_CODE = 3


class Client(Protocol):
    def chain_id(self) -> int: ...

    def get_balance(self, address: str) -> int: ...

    def get_nonce(self, address: str) -> int: ...

    def gas_price(self) -> int: ...

    def estimate_gas(self, tx: dict[str, Any]) -> int: ...

    def call(self, tx: dict[str, Any]) -> str: ...

    def send_raw_transaction(self, raw_tx: str) -> str: ...

    def get_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]: ...

    def close(self) -> None: ...


def _revert_data(error: dict[str, Any]) -> Optional[str]:
    data = error.get("data")
    if isinstance(data, dict):
        # Ganache / Hardhat nest the payload one level down
        data = data.get("data") or data.get("result")
    if isinstance(data, str) and data.startswith("0x"):
        return data
    return None


def _reason_from_message(message: str) -> Optional[str]:
    prefix = "execution reverted"
    if prefix not in message:
        return None
    reason = message.split(prefix, 1)[1].lstrip(":").strip()
    return reason or None


def raise_for_rpc_error(method: str, error: dict[str, Any]) -> None:
    """Map a JSON-RPC error object onto the chainscript error kinds."""
    message = str(error.get("message", error))
    code = error.get("code")
    lowered = message.lower()

    if "insufficient funds" in lowered:
        raise InsufficientFundsError(f"{method}: {message}")
    if code == REVERT_ERROR_CODE or "revert" in lowered:
        raise RevertError(reason=_reason_from_message(message), data=_revert_data(error))
    raise RpcError(f"{method}: {message}", code=code, data=error.get("data"))


class JsonRpcClient:
    """One HTTP connection to one JSON-RPC endpoint for the life of a run."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._http = httpx.Client(timeout=timeout, transport=transport)
        self._request_id = 0

    def __enter__(self) -> "JsonRpcClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def request(self, method: str, params: list) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            Result field from the RPC response

        Raises:
            ConnectivityError: On transport failure or a non-2xx HTTP status
            RevertError / InsufficientFundsError / RpcError: On a JSON-RPC error
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }
        logger.debug("rpc -> %s %s", method, self._request_id)

        try:
            response = self._http.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ConnectivityError(
                f"{method}: HTTP {exc.response.status_code} from {self.rpc_url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ConnectivityError(f"{method}: cannot reach {self.rpc_url}: {exc}") from exc
        except ValueError as exc:
            raise ConnectivityError(f"{method}: endpoint did not return JSON") from exc

        if isinstance(data, dict) and data.get("error"):
            raise_for_rpc_error(method, data["error"])
        if not isinstance(data, dict) or "result" not in data:
            raise RpcError(f"{method}: malformed JSON-RPC response")

        return data["result"]

    def chain_id(self) -> int:
        result = self.request("eth_chainId", [])
        if not (isinstance(result, str) and result[:2].lower() == "0x" and len(result) > 2 and is_hex(result)):
            raise RpcError(f"eth_chainId: expected a hex quantity, got {result!r}")
        return hex_to_int(result)

    def get_balance(self, address: str) -> int:
        return hex_to_int(self.request("eth_getBalance", [address, "latest"]))

    def get_nonce(self, address: str) -> int:
        return hex_to_int(self.request("eth_getTransactionCount", [address, "pending"]))

    def gas_price(self) -> int:
        return hex_to_int(self.request("eth_gasPrice", []))

    def estimate_gas(self, tx: dict[str, Any]) -> int:
        return hex_to_int(self.request("eth_estimateGas", [_rpc_tx(tx)]))

    def call(self, tx: dict[str, Any]) -> str:
        return self.request("eth_call", [_rpc_tx(tx), "latest"])

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self.request("eth_sendRawTransaction", [raw_tx])

    def get_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        return self.request("eth_getTransactionReceipt", [tx_hash])


def _rpc_tx(tx: dict[str, Any]) -> dict[str, Any]:
    """Render a call object with quantities as hex strings."""
    rendered: dict[str, Any] = {}
    for key, value in tx.items():
        if value is None:
            continue
        rendered[key] = hex(value) if isinstance(value, int) else value
    return rendered
