"""
Deploy - Deploy a token contract and report its token information.

Flow:
1. Connect and show deployer address, chain and balance
2. Abort if the deployer has no balance at all
3. Broadcast the creation transaction and print its hash
4. Wait for the receipt and print the contract address
5. Read name / symbol / totalSupply / balanceOf(deployer) when the ABI has them
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..errors import InsufficientFundsError
from ..models import CallRequest
from ..rpc.abi import ContractDescriptor
from ..rpc.tx import Connection, bind, connect, deploy as deploy_contract, invoke, wait_for_confirmation
from ..utils import format_ether, format_units
from .common import (
    build_config,
    build_overrides,
    connection_options,
    gas_options,
    load_descriptor,
    parse_args_json,
    reporting_errors,
)


def read_token_info(connection: Connection, descriptor: ContractDescriptor) -> dict[str, object]:
    """Read the ERC-20 style getters the ABI declares; missing ones are skipped."""
    token = bind(connection, descriptor)
    info: dict[str, object] = {}
    for getter in ("name", "symbol", "decimals", "totalSupply"):
        if descriptor.has_function(getter):
            info[getter] = invoke(token, CallRequest.read(getter)).value
    if descriptor.has_function("balanceOf"):
        info["balanceOf"] = invoke(token, CallRequest.read("balanceOf", connection.address)).value
    return info


@click.command()
@click.option(
    "--artifact",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Hardhat or Foundry build artifact (abi + bytecode)",
)
@click.option("--args", "args_json", default="[]", help="Constructor args as JSON array")
@click.option("--currency", default="ETH", show_default=True, help="Native currency symbol for display")
@click.option("--explorer-url", default=None, help="Block explorer base URL, e.g. https://testnet.bscscan.com")
@click.option("--timeout", default=180.0, show_default=True, help="Seconds to wait for the receipt")
@connection_options
@gas_options
def deploy(
    artifact: Path,
    args_json: str,
    currency: str,
    explorer_url: Optional[str],
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
    Deploy a contract from a compiled artifact.

    Waits for the receipt, then prints the token's name, symbol and supply.
    """
    click.echo("=== chainscript deploy ===")
    click.echo("")

    constructor_args = parse_args_json(args_json)
    overrides = build_overrides(gas_limit, gas_price, gas_price_gwei, value)

    with reporting_errors():
        descriptor = load_descriptor(artifact, ())
        config = build_config(rpc_url, key_env, env_file, chain_id)

        with connect(config) as connection:
            click.echo(f"  Deployer: {connection.address}")
            click.echo(f"  Chain ID: {connection.chain_id}")

            balance = connection.client.get_balance(connection.address)
            click.echo(f"  Balance:  {format_ether(balance)} {currency}")
            click.echo("")
            if balance == 0:
                raise InsufficientFundsError(
                    "Insufficient balance for deployment", required=None, available=0
                )

            click.echo(f"  Deploying {artifact.stem}...")
            result = deploy_contract(
                connection, descriptor, constructor_args, overrides=overrides, wait=False
            )
            click.echo(f"  TX: {result.tx_hash}")
            click.echo("  Waiting for confirmation...")

            receipt = wait_for_confirmation(result.tx_hash, connection.client, timeout=timeout)
            address = receipt.contract_address or result.contract_address

            click.echo("")
            click.secho("  Contract deployed!", fg="green", bold=True)
            click.echo(f"  Address: {address}")
            click.echo(f"  Block:   {receipt.block_number} (gas used {receipt.gas_used})")

            info = read_token_info(connection, descriptor.at(address))

    if info:
        decimals = int(info.get("decimals", 18))
        click.echo("")
        click.secho("  Token Information:", fg="cyan")
        if "name" in info:
            click.echo(f"    Name:             {info['name']}")
        if "symbol" in info:
            click.echo(f"    Symbol:           {info['symbol']}")
        if "totalSupply" in info:
            click.echo(f"    Total Supply:     {format_units(info['totalSupply'], decimals)}")
        if "balanceOf" in info:
            click.echo(f"    Deployer Balance: {format_units(info['balanceOf'], decimals)}")

    if explorer_url:
        click.echo("")
        click.echo(f"  Explorer: {explorer_url.rstrip('/')}/address/{address}")
