"""Shared click options and helpers for the command modules."""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Sequence

import click

from ..config import DEFAULT_KEY_ENV, ConnectionConfig
from ..errors import ChainscriptError
from ..models import Overrides
from ..rpc.abi import ContractDescriptor
from ..utils import gwei_to_wei, parse_quantity


class QuantityType(click.ParamType):
    """Integer option accepting decimal or 0x-prefixed hex (``0x1C9C380``)."""

    name = "quantity"

    def convert(self, value: Any, param: Optional[click.Parameter], ctx: Optional[click.Context]) -> int:
        if isinstance(value, int):
            return value
        try:
            quantity = parse_quantity(value)
        except ValueError:
            self.fail(f"{value!r} is not a decimal or hex integer", param, ctx)
        if quantity < 0:
            self.fail(f"{value!r} must not be negative", param, ctx)
        return quantity


QUANTITY = QuantityType()


def connection_options(func: Callable) -> Callable:
    """RPC endpoint and signing-key options shared by every on-chain command."""
    options = [
        click.option(
            "--rpc-url",
            envvar="RPC_URL",
            default=None,
            help="JSON-RPC endpoint (default: $RPC_URL)",
        ),
        click.option(
            "--key-env",
            default=DEFAULT_KEY_ENV,
            show_default=True,
            help="Environment variable holding the signing key",
        ),
        click.option(
            "--env-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=Path(".env"),
            show_default=True,
            help=".env file to load (existing variables win)",
        ),
        click.option(
            "--chain-id",
            type=int,
            default=None,
            help="Expected chain id; abort if the endpoint reports another",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def gas_options(func: Callable) -> Callable:
    """Optional gas price / limit overrides; omitted values are estimated."""
    options = [
        click.option("--gas-limit", type=QUANTITY, default=None, help="Gas limit (decimal or hex)"),
        click.option("--gas-price", type=QUANTITY, default=None, help="Gas price in wei"),
        click.option("--gas-price-gwei", default=None, help="Gas price in gwei, e.g. 10"),
        click.option("--value", type=QUANTITY, default=0, help="Native value to send, in wei"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_config(
    rpc_url: Optional[str],
    key_env: str,
    env_file: Optional[Path],
    chain_id: Optional[int],
) -> ConnectionConfig:
    config = ConnectionConfig.from_env(key_env=key_env, env_path=env_file, rpc_url=rpc_url)
    if chain_id is not None:
        config = replace(config, chain_id=chain_id)
    return config


def build_overrides(
    gas_limit: Optional[int],
    gas_price: Optional[int],
    gas_price_gwei: Optional[str],
    value: int = 0,
) -> Overrides:
    if gas_price is not None and gas_price_gwei is not None:
        raise click.UsageError("Use either --gas-price or --gas-price-gwei, not both")
    if gas_price_gwei is not None:
        try:
            gas_price = gwei_to_wei(gas_price_gwei)
        except ArithmeticError:
            raise click.BadParameter(f"{gas_price_gwei!r} is not a number", param_hint="--gas-price-gwei")
    return Overrides(gas_price=gas_price, gas_limit=gas_limit, value=value)


def load_descriptor(
    abi_path: Optional[Path],
    signatures: Sequence[str],
    address: Optional[str] = None,
    default_signatures: Sequence[str] = (),
) -> ContractDescriptor:
    """Descriptor from an ABI/artifact file, or from human-readable signatures."""
    if abi_path is not None:
        descriptor = ContractDescriptor.from_artifact(abi_path)
        if signatures:
            descriptor = ContractDescriptor.from_abi(
                [*descriptor.abi, *signatures], bytecode=descriptor.bytecode
            )
    else:
        abi = list(signatures) or list(default_signatures)
        if not abi:
            raise click.UsageError("Provide --abi or at least one --signature")
        descriptor = ContractDescriptor.from_abi(abi)
    return descriptor.at(address) if address else descriptor


def parse_args_json(args_json: str) -> list:
    try:
        args = json.loads(args_json)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"Invalid JSON: {exc}", param_hint="--args")
    if not isinstance(args, list):
        raise click.BadParameter("Args must be a JSON array", param_hint="--args")
    return args


def to_jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def format_value(value: Any) -> str:
    """Render a decoded return value for the console."""
    if isinstance(value, str):
        return value
    return json.dumps(to_jsonable(value), default=str)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Print a failed run as ``Kind: message`` and exit with the error's code."""
    try:
        yield
    except ChainscriptError as exc:
        click.secho(f"{exc.kind}: {exc}", fg="red")
        sys.exit(exc.exit_code)
    except FileNotFoundError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)
