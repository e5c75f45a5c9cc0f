"""Shared fixtures: an in-memory chain standing in for the JSON-RPC node."""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest
import rlp
from eth_abi import encode
from eth_account import Account
from eth_utils import keccak, to_checksum_address

from chainscript.config import ConnectionConfig
from chainscript.errors import RevertError
from chainscript.rpc.tx import Connection, connect, contract_address_for

# Well-known Anvil/Hardhat dev key #0; never holds real funds
PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
RPC_URL = "http://127.0.0.1:8545"
CHAIN_ID = 97


class FakeClient:
    """
    Minimal chain: balances, nonces, an eth_call dispatcher keyed by
    selector, and receipts that appear after ``pending_polls`` lookups.
    """

    def __init__(self, chain_id: int = CHAIN_ID, gas_price: int = 10**9) -> None:
        self._chain_id = chain_id
        self._gas_price = gas_price
        self.balances: dict[str, int] = {}
        self.nonces: dict[str, int] = {}
        self.gas_estimate = 100_000
        self.estimate_error: Optional[Exception] = None
        self.call_results: dict[str, Any] = {}
        self.calls: list[dict[str, Any]] = []
        self.sent: list[bytes] = []
        self.receipts: dict[str, dict[str, Any]] = {}
        self.receipt_status = 1
        self.pending_polls = 0
        self.receipt_lookups = 0
        self.mine = True
        self.closed = False
        self.on_chain_id: Optional[Callable[[], int]] = None

    # -- Client interface -------------------------------------------------

    def chain_id(self) -> int:
        if self.on_chain_id is not None:
            return self.on_chain_id()
        return self._chain_id

    def get_balance(self, address: str) -> int:
        return self.balances.get(address.lower(), 0)

    def get_nonce(self, address: str) -> int:
        return self.nonces.get(address.lower(), 0)

    def gas_price(self) -> int:
        return self._gas_price

    def estimate_gas(self, tx: dict[str, Any]) -> int:
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.gas_estimate

    def call(self, tx: dict[str, Any]) -> str:
        self.calls.append(tx)
        selector = tx["data"][:10]
        result = self.call_results.get(selector, "0x")
        if isinstance(result, Exception):
            raise result
        return result

    def send_raw_transaction(self, raw_tx: str) -> str:
        raw = bytes.fromhex(raw_tx[2:])
        self.sent.append(raw)
        sender = Account.recover_transaction(raw_tx)
        nonce = self.nonces.get(sender.lower(), 0)
        self.nonces[sender.lower()] = nonce + 1
        tx_hash = "0x" + keccak(raw).hex()

        if self.mine:
            fields = rlp.decode(raw)
            is_create = fields[3] == b""
            self.receipts[tx_hash] = {
                "transactionHash": tx_hash,
                "status": hex(self.receipt_status),
                "blockNumber": hex(1000 + len(self.sent)),
                "gasUsed": hex(21_000),
                "contractAddress": (
                    contract_address_for(sender, nonce).lower() if is_create else None
                ),
                "logs": [],
            }
        return tx_hash

    def get_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        self.receipt_lookups += 1
        if self.receipt_lookups <= self.pending_polls:
            return None
        return self.receipts.get(tx_hash)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- helpers for assertions --------------------------------------------

    def fund(self, address: str, amount: int) -> None:
        self.balances[address.lower()] = amount

    def decoded_sent(self, index: int = -1) -> dict[str, Any]:
        """Decode a legacy signed transaction back into its fields."""
        nonce, gas_price, gas, to, value, data, *_sig = rlp.decode(self.sent[index])
        return {
            "nonce": int.from_bytes(nonce, "big"),
            "gasPrice": int.from_bytes(gas_price, "big"),
            "gas": int.from_bytes(gas, "big"),
            "to": to_checksum_address(to) if to else None,
            "value": int.from_bytes(value, "big"),
            "data": data,
        }


def revert_with(reason: str) -> RevertError:
    """What the JSON-RPC client raises for ``require(false, reason)``."""
    data = "0x08c379a0" + encode(["string"], [reason]).hex()
    return RevertError(reason=None, data=data)


@pytest.fixture()
def fake_client() -> FakeClient:
    client = FakeClient()
    client.fund(ADDRESS, 10**18)
    return client


@pytest.fixture()
def config() -> ConnectionConfig:
    return ConnectionConfig(rpc_url=RPC_URL, signing_key=PRIVATE_KEY)


@pytest.fixture()
def connection(config: ConnectionConfig, fake_client: FakeClient) -> Connection:
    return connect(config, client=fake_client)
