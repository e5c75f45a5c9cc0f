"""
Call - read-only / static contract call.

Runs the function with ``eth_call`` against the latest block and prints the
decoded return value.  Works for view functions and, as a static call, for
state-changing ones too (nothing is broadcast, no gas is spent).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..models import CallRequest, Overrides
from ..rpc.tx import bind, connect, invoke
from .common import (
    QUANTITY,
    build_config,
    connection_options,
    format_value,
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
@click.option(
    "--signature",
    "signatures",
    multiple=True,
    help='Human-readable ABI fragment, e.g. "function name() view returns (string)"',
)
@click.option("--value", type=QUANTITY, default=0, help="Native value for payable functions, in wei")
@connection_options
def call(
    contract: str,
    func_name: str,
    args_json: str,
    abi_path: Optional[Path],
    signatures: tuple[str, ...],
    value: int,
    rpc_url: Optional[str],
    key_env: str,
    env_file: Path,
    chain_id: Optional[int],
) -> None:
    """Static-call a contract function and print the result."""
    args = parse_args_json(args_json)

    with reporting_errors():
        descriptor = load_descriptor(abi_path, signatures, address=contract)
        config = build_config(rpc_url, key_env, env_file, chain_id)

        with connect(config) as connection:
            request = CallRequest(
                function_name=func_name,
                args=tuple(args),
                is_read_only=True,
                overrides=Overrides(value=value),
            )
            result = invoke(bind(connection, descriptor), request)

    click.echo(format_value(result.value))
