from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from eth_utils import to_checksum_address

from .utils import hex_to_int


class TxState(str, Enum):
    CONSTRUCTED = "constructed"
    SIGNED = "signed"
    BROADCAST = "broadcast"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    DROPPED = "dropped"

    @property
    def is_terminal(self) -> bool:
        return self in (TxState.CONFIRMED, TxState.REVERTED, TxState.DROPPED)


@dataclass(frozen=True)
class Overrides:
    gas_price: Optional[int] = None
    gas_limit: Optional[int] = None
    value: int = 0


@dataclass(frozen=True)
class CallRequest:
    function_name: str
    args: tuple = ()
    is_read_only: bool = False
    overrides: Overrides = field(default_factory=Overrides)

    @classmethod
    def read(cls, function_name: str, *args: Any) -> "CallRequest":
        return cls(function_name=function_name, args=tuple(args), is_read_only=True)

    @classmethod
    def write(
        cls,
        function_name: str,
        *args: Any,
        gas_price: Optional[int] = None,
        gas_limit: Optional[int] = None,
        value: int = 0,
    ) -> "CallRequest":
        return cls(
            function_name=function_name,
            args=tuple(args),
            is_read_only=False,
            overrides=Overrides(gas_price=gas_price, gas_limit=gas_limit, value=value),
        )


def _checksum_or_none(address: Optional[str]) -> Optional[str]:
    return to_checksum_address(address) if address else None


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    status: Optional[int]
    block_number: int
    gas_used: int
    contract_address: Optional[str] = None
    logs: tuple = ()

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Receipt":
        return cls(
            tx_hash=payload["transactionHash"],
            status=hex_to_int(payload["status"]) if payload.get("status") is not None else None,
            block_number=hex_to_int(payload.get("blockNumber")),
            gas_used=hex_to_int(payload.get("gasUsed")),
            contract_address=_checksum_or_none(payload.get("contractAddress")),
            logs=tuple(payload.get("logs") or ()),
        )

    @property
    def succeeded(self) -> bool:
        # Pre-Byzantium receipts have no status; mined is all they tell us
        return self.status != 0

    @property
    def state(self) -> TxState:
        return TxState.CONFIRMED if self.succeeded else TxState.REVERTED


@dataclass(frozen=True)
class CallResult:
    """Outcome of one invocation.

    State-changing calls carry ``tx_hash`` (and ``receipt`` once waited for);
    read-only calls carry only ``value``.
    """

    tx_hash: Optional[str] = None
    state: Optional[TxState] = None
    receipt: Optional[Receipt] = None
    contract_address: Optional[str] = None
    value: Any = None

    @classmethod
    def read(cls, value: Any) -> "CallResult":
        return cls(value=value)

    @property
    def is_read_only(self) -> bool:
        return self.tx_hash is None
