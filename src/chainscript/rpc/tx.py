"""
Transaction submitter - connect, bind, invoke, wait.

One run performs one contract interaction:

    connection = connect(config)
    token = bind(connection, descriptor)
    result = invoke(token, CallRequest.write("batchMint", to, uris))

Read-only requests go through ``eth_call`` and return a decoded value.
State-changing requests are signed locally with eth-account, broadcast with
``eth_sendRawTransaction`` and return the hash straight away; pass
``wait=True`` (or call :func:`wait_for_confirmation`) to block for a receipt.
All gas is paid by the signing EOA.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Sequence

import rlp
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_checksum_address, to_hex

from ..config import ConnectionConfig, load_account
from ..errors import (
    ChainscriptError,
    ConfirmationTimeoutError,
    ConnectivityError,
    InsufficientFundsError,
    InvalidInterfaceError,
    RevertError,
    RpcError,
    TransactionFailedError,
)
from ..models import CallRequest, CallResult, Overrides, Receipt, TxState
from .abi import ContractDescriptor, decode_result, decode_revert_reason, encode_call, encode_deploy
from .client import Client, JsonRpcClient

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 2.0


@dataclass
class Connection:
    """An RPC client plus the account that signs for it."""

    client: Client
    account: LocalAccount
    chain_id: int

    @property
    def address(self) -> str:
        return self.account.address

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@dataclass(frozen=True)
class BoundContract:
    connection: Connection
    descriptor: ContractDescriptor

    @property
    def address(self) -> str:
        return self.descriptor.address  # type: ignore[return-value]


def connect(config: ConnectionConfig, client: Optional[Client] = None) -> Connection:
    """
    Build the RPC client and signing identity for one run.

    The key is validated before any network traffic; the endpoint is then
    asked for its chain id with ``eth_chainId``.  A missing or malformed
    answer is a ``ConnectivityError``.

    Raises:
        InvalidKeyError: If the signing key is malformed
        ConnectivityError: If the endpoint cannot be reached, is not a
            JSON-RPC node, or reports a different chain than configured
    """
    account = load_account(config.signing_key)
    client = client or JsonRpcClient(config.rpc_url, timeout=config.timeout)

    try:
        chain_id = client.chain_id()
    except (RpcError, ValueError, TypeError) as exc:
        client.close()
        raise ConnectivityError(f"{config.rpc_url} is not a usable JSON-RPC endpoint: {exc}") from exc
    except ChainscriptError:
        client.close()
        raise

    if not isinstance(chain_id, int) or chain_id <= 0:
        client.close()
        raise ConnectivityError(f"{config.rpc_url} reported an invalid chain id {chain_id!r}")

    if config.chain_id is not None and config.chain_id != chain_id:
        client.close()
        raise ConnectivityError(
            f"Endpoint reports chain id {chain_id}, expected {config.chain_id}"
        )

    logger.info("connected to chain %s as %s", chain_id, account.address)
    return Connection(client=client, account=account, chain_id=chain_id)


def bind(connection: Connection, descriptor: ContractDescriptor) -> BoundContract:
    """Attach a connection to a deployed contract. No network access."""
    if not descriptor.address:
        raise InvalidInterfaceError("Contract descriptor has no address to bind to")
    return BoundContract(connection=connection, descriptor=descriptor)


def invoke(
    bound: BoundContract,
    request: CallRequest,
    wait: bool = False,
    timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> CallResult:
    """
    Perform one contract interaction.

    Read-only requests never create a transaction.  State-changing requests
    return as soon as the node accepts the raw transaction, unless ``wait``.

    Raises:
        RevertError: If the call (or gas estimation) reverts
        InsufficientFundsError: If the signer cannot cover gas * price + value
        TransactionFailedError / ConfirmationTimeoutError: Only with ``wait``
    """
    descriptor = bound.descriptor
    entry = descriptor.function(request.function_name, len(request.args))
    calldata = encode_call(entry, request.args)

    if request.is_read_only:
        tx = {
            "from": bound.connection.address,
            "to": descriptor.address,
            "data": calldata,
            "value": request.overrides.value or None,
        }
        raw = _call(bound.connection.client, tx, descriptor.abi)
        return CallResult.read(decode_result(entry, raw))

    logger.info("sending %s to %s", entry["name"], descriptor.address)
    return _submit(
        bound.connection,
        {"to": descriptor.address, "data": calldata, "value": request.overrides.value},
        request.overrides,
        descriptor.abi,
        wait=wait,
        timeout=timeout,
        poll_interval=poll_interval,
    )


def simulate(bound: BoundContract, request: CallRequest) -> Any:
    """Dry-run a state-changing request with ``eth_call`` and return its decoded value."""
    return invoke(bound, replace(request, is_read_only=True)).value


def deploy(
    connection: Connection,
    descriptor: ContractDescriptor,
    constructor_args: Sequence[Any] = (),
    overrides: Optional[Overrides] = None,
    wait: bool = True,
    timeout: float = 180.0,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> CallResult:
    """
    Deploy a contract.

    Builds a creation transaction (no ``to``) carrying the init bytecode and
    constructor args.  ``contract_address`` is predicted from the sender and
    nonce before broadcast; once confirmed the receipt's address is used.
    """
    if not descriptor.bytecode:
        raise InvalidInterfaceError("Contract descriptor has no deployment bytecode")

    overrides = overrides or Overrides()
    data = encode_deploy(descriptor.bytecode, descriptor.constructor(), constructor_args)
    logger.info("deploying %d bytes of init code", (len(data) - 2) // 2)

    return _submit(
        connection,
        {"data": data, "value": overrides.value},
        overrides,
        descriptor.abi,
        wait=wait,
        timeout=timeout,
        poll_interval=poll_interval,
    )


def wait_for_confirmation(
    tx_hash: str,
    client: Client,
    timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> Receipt:
    """
    Poll for a transaction receipt.

    Raises:
        TransactionFailedError: If the receipt status is 0
        ConfirmationTimeoutError: If no receipt appears within ``timeout``
            (the transaction was dropped, replaced or is still queued)
    """
    deadline = time.monotonic() + timeout
    while True:
        payload = client.get_receipt(tx_hash)
        if payload is not None:
            receipt = Receipt.from_rpc(payload)
            logger.info(
                "%s mined in block %s (status=%s, gas used %s)",
                tx_hash, receipt.block_number, receipt.status, receipt.gas_used,
            )
            if not receipt.succeeded:
                raise TransactionFailedError(receipt)
            return receipt
        if time.monotonic() >= deadline:
            raise ConfirmationTimeoutError(tx_hash, timeout)
        sleep(poll_interval)


def contract_address_for(sender: str, nonce: int) -> str:
    """CREATE address: ``keccak(rlp([sender, nonce]))[12:]``."""
    sender_bytes = bytes.fromhex(sender[2:] if sender.startswith("0x") else sender)
    return to_checksum_address(keccak(rlp.encode([sender_bytes, nonce]))[12:])


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------

def _decoded_revert(exc: RevertError, abi: Sequence[dict[str, Any]]) -> RevertError:
    reason = decode_revert_reason(exc.data, abi) or exc.reason
    return RevertError(reason=reason, data=exc.data)


def _call(client: Client, tx: dict[str, Any], abi: Sequence[dict[str, Any]]) -> str:
    try:
        return client.call(tx)
    except RevertError as exc:
        raise _decoded_revert(exc, abi) from exc


def _submit(
    connection: Connection,
    tx: dict[str, Any],
    overrides: Overrides,
    abi: Sequence[dict[str, Any]],
    wait: bool,
    timeout: float,
    poll_interval: float,
) -> CallResult:
    client = connection.client
    sender = connection.address
    value = overrides.value or 0

    gas_price = overrides.gas_price if overrides.gas_price is not None else client.gas_price()
    if overrides.gas_limit is not None:
        gas_limit = overrides.gas_limit
    else:
        try:
            gas_limit = client.estimate_gas({"from": sender, **tx})
        except RevertError as exc:
            raise _decoded_revert(exc, abi) from exc

    required = gas_limit * gas_price + value
    balance = client.get_balance(sender)
    if balance < required:
        raise InsufficientFundsError(
            f"{sender} holds {balance} wei but the transaction may cost up to "
            f"{required} wei (gas {gas_limit} x price {gas_price} + value {value})",
            required=required,
            available=balance,
        )

    nonce = client.get_nonce(sender)
    full_tx = {
        **tx,
        "value": value,
        "nonce": nonce,
        "gas": gas_limit,
        "gasPrice": gas_price,
        "chainId": connection.chain_id,
    }
    predicted_address = contract_address_for(sender, nonce) if "to" not in tx else None
    logger.debug("%s: nonce=%s gas=%s gasPrice=%s", TxState.CONSTRUCTED.value, nonce, gas_limit, gas_price)

    signed = connection.account.sign_transaction(full_tx)
    logger.debug("%s: %s", TxState.SIGNED.value, to_hex(signed.hash))

    tx_hash = client.send_raw_transaction(to_hex(signed.raw_transaction)) or to_hex(signed.hash)
    logger.info("%s: %s", TxState.BROADCAST.value, tx_hash)

    if not wait:
        return CallResult(tx_hash=tx_hash, state=TxState.PENDING, contract_address=predicted_address)

    receipt = wait_for_confirmation(tx_hash, client, timeout=timeout, poll_interval=poll_interval)
    return CallResult(
        tx_hash=tx_hash,
        state=receipt.state,
        receipt=receipt,
        contract_address=receipt.contract_address or predicted_address,
    )
