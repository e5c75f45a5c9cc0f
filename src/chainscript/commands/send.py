"""
Send - execute a state-changing contract call from the signing EOA.

Also home to ``receipt``, which waits for an already broadcast transaction.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import click

from ..config import load_env_file
from ..errors import ConfigError
from ..models import CallRequest
from ..rpc.client import JsonRpcClient
from ..rpc.tx import bind, connect, invoke, simulate, wait_for_confirmation
from ..utils import is_tx_hash
from .common import (
    build_config,
    build_overrides,
    connection_options,
    format_value,
    gas_options,
    load_descriptor,
    parse_args_json,
    reporting_errors,
)


@click.command()
@click.option("--contract", required=True, help="Target contract address")
@click.option("--function", "func_name", required=True, help="Function name or full signature")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option(
    "--abi",
    "abi_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Contract ABI JSON or build artifact",
)
@click.option("--signature", "signatures", multiple=True, help="Human-readable ABI fragment")
@click.option("--wait/--no-wait", default=False, help="Wait for the receipt")
@click.option("--dry-run", is_flag=True, help="Simulate with eth_call; do not broadcast")
@click.option("--timeout", default=120.0, show_default=True, help="Seconds to wait for the receipt")
@connection_options
@gas_options
def send(
    contract: str,
    func_name: str,
    args_json: str,
    abi_path: Optional[Path],
    signatures: tuple[str, ...],
    wait: bool,
    dry_run: bool,
    timeout: float,
    rpc_url: Optional[str],
    key_env: str,
    env_file: Path,
    chain_id: Optional[int],
    gas_limit: Optional[int],
    gas_price: Optional[int],
    gas_price_gwei: Optional[str],
    value: int,
) -> None:
    """
    Send a contract transaction.

    Prints the transaction hash as soon as the node accepts it.
    """
    args = parse_args_json(args_json)
    overrides = build_overrides(gas_limit, gas_price, gas_price_gwei, value)
    request = CallRequest(function_name=func_name, args=tuple(args), overrides=overrides)

    with reporting_errors():
        descriptor = load_descriptor(abi_path, signatures, address=contract)
        config = build_config(rpc_url, key_env, env_file, chain_id)

        with connect(config) as connection:
            bound = bind(connection, descriptor)
            click.echo(f"  Sender:   {connection.address}")
            click.echo(f"  Target:   {bound.address}")
            click.echo(f"  Function: {func_name}")
            click.echo(f"  Args:     {format_value(args)}")
            if value > 0:
                click.echo(f"  Value:    {value} wei")
            click.echo("")

            if dry_run:
                returned = simulate(bound, request)
                click.secho("  Simulation succeeded (nothing broadcast)", fg="green")
                if returned is not None:
                    click.echo(f"  Returned: {format_value(returned)}")
                return

            result = invoke(bound, request, wait=wait, timeout=timeout)

    click.echo(f"  TX: {result.tx_hash}")
    if result.receipt is not None:
        click.secho(
            f"  Confirmed in block {result.receipt.block_number} (gas used {result.receipt.gas_used})",
            fg="green",
        )


@click.command()
@click.argument("tx_hash")
@click.option("--rpc-url", envvar="RPC_URL", default=None, help="JSON-RPC endpoint (default: $RPC_URL)")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".env"),
    show_default=True,
)
@click.option("--timeout", default=120.0, show_default=True, help="Seconds to wait before giving up")
@click.option("--poll-interval", default=2.0, show_default=True, help="Seconds between polls")
def receipt(
    tx_hash: str,
    rpc_url: Optional[str],
    env_file: Path,
    timeout: float,
    poll_interval: float,
) -> None:
    """Wait for TX_HASH to be mined and print its receipt."""
    if not is_tx_hash(tx_hash):
        raise click.BadParameter("Expected a 0x-prefixed 32-byte hash", param_hint="TX_HASH")

    with reporting_errors():
        if rpc_url is None:
            load_env_file(env_file)
            rpc_url = os.environ.get("RPC_URL")
        if not rpc_url:
            raise ConfigError("RPC_URL not set. Pass --rpc-url or add it to .env")

        with JsonRpcClient(rpc_url) as client:
            mined = wait_for_confirmation(tx_hash, client, timeout=timeout, poll_interval=poll_interval)

    click.secho("  Confirmed", fg="green", bold=True)
    click.echo(f"  Block:    {mined.block_number}")
    click.echo(f"  Gas used: {mined.gas_used}")
    if mined.contract_address:
        click.echo(f"  Contract: {mined.contract_address}")
