"""
Batch Mint - mint a run of token URIs in one transaction.

The target contract takes every URI as one ``string[]`` argument
(``batchMint(address to, string[] uris)``), so however many items there
are, exactly one transaction is sent.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..models import CallRequest
from ..rpc.tx import bind, connect, invoke, simulate
from .common import (
    build_config,
    build_overrides,
    connection_options,
    format_value,
    gas_options,
    load_descriptor,
    reporting_errors,
)

BATCH_MINT_SIGNATURES = ("function batchMint(address to, string[] tokenURIs)",)


def build_token_uris(template: str, count: int, start: int = 0) -> list[str]:
    """
    Expand a URI template into ``count`` URIs.

    ``{i}`` in the template is replaced with the item index:

        >>> build_token_uris("ipfs://Qm.../cItem{i}.json", 2)
        ['ipfs://Qm.../cItem0.json', 'ipfs://Qm.../cItem1.json']
    """
    if count <= 0:
        raise ValueError("count must be positive")
    if "{i}" not in template:
        raise ValueError("URI template must contain {i}")
    return [template.replace("{i}", str(index)) for index in range(start, start + count)]


def read_uris_file(path: Path) -> list[str]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.startswith("#")]


@click.command("batch-mint")
@click.option("--contract", required=True, help="NFT contract address")
@click.option("--to", "recipient", required=True, help="Recipient of the minted tokens")
@click.option("--uri-template", default=None, help="Token URI with {i} placeholder")
@click.option("--count", type=int, default=None, help="Number of URIs to generate")
@click.option("--start", type=int, default=0, show_default=True, help="First index for {i}")
@click.option(
    "--uris-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="File with one token URI per line",
)
@click.option("--function", "func_name", default="batchMint", show_default=True, help="Mint function name")
@click.option(
    "--abi",
    "abi_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Contract ABI JSON (default: batchMint(address,string[]))",
)
@click.option("--wait/--no-wait", default=False, help="Wait for the receipt")
@click.option("--dry-run", is_flag=True, help="Simulate with eth_call; do not broadcast")
@click.option("--timeout", default=120.0, show_default=True, help="Seconds to wait for the receipt")
@connection_options
@gas_options
def batch_mint(
    contract: str,
    recipient: str,
    uri_template: Optional[str],
    count: Optional[int],
    start: int,
    uris_file: Optional[Path],
    func_name: str,
    abi_path: Optional[Path],
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
    Mint many token URIs with a single batchMint transaction.

    \b
    Examples:
      chainscript batch-mint --contract 0xA1d1... --to 0x8AF1... \\
          --uri-template "ipfs://Qm.../cItem{i}.json" --count 60 \\
          --gas-price-gwei 10 --gas-limit 0x1C9C380
      chainscript batch-mint --contract 0xA1d1... --to 0x8AF1... --uris-file uris.txt
    """
    if uris_file is not None:
        uris = read_uris_file(uris_file)
    elif uri_template is not None and count is not None:
        try:
            uris = build_token_uris(uri_template, count, start)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--uri-template/--count")
    else:
        raise click.UsageError("Provide --uris-file, or --uri-template with --count")
    if not uris:
        raise click.UsageError("No token URIs to mint")

    overrides = build_overrides(gas_limit, gas_price, gas_price_gwei, value)
    request = CallRequest.write(
        func_name,
        recipient,
        uris,
        gas_price=overrides.gas_price,
        gas_limit=overrides.gas_limit,
        value=overrides.value,
    )

    with reporting_errors():
        descriptor = load_descriptor(
            abi_path, (), address=contract, default_signatures=BATCH_MINT_SIGNATURES
        )
        config = build_config(rpc_url, key_env, env_file, chain_id)

        with connect(config) as connection:
            nft = bind(connection, descriptor)
            click.echo(f"  Minter:    {connection.address}")
            click.echo(f"  Contract:  {nft.address}")
            click.echo(f"  Recipient: {recipient}")
            click.echo(f"  URIs:      {len(uris)} ({uris[0]} ... {uris[-1]})")
            click.echo("")

            if dry_run:
                returned = simulate(nft, request)
                click.secho("  Simulation succeeded (nothing broadcast)", fg="green")
                if returned is not None:
                    click.echo(f"  Returned: {format_value(returned)}")
                return

            result = invoke(nft, request, wait=wait, timeout=timeout)

    click.echo(result.tx_hash)
    if result.receipt is not None:
        click.secho(
            f"  Confirmed in block {result.receipt.block_number} (gas used {result.receipt.gas_used})",
            fg="green",
        )
