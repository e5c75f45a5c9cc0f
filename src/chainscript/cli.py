"""
chainscript CLI

Command-line interface for one-shot contract interactions on EVM chains.
Every command connects, performs exactly one interaction, reports it and
exits: 0 on success, the error's exit code otherwise.

Commands:
  deploy      - Deploy a token contract from a build artifact
  batch-mint  - Mint many token URIs in one batchMint transaction
  call        - Read-only / static call, prints the decoded value
  send        - Send a state-changing contract call
  receipt     - Wait for a transaction receipt
  whoami      - Show the address of the configured signing key
  info        - Show configuration
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click

from .config import DEFAULT_KEY_ENV, RPC_URL_ENV, load_account, load_env_file
from .errors import ChainscriptError
from .utils import mask_secret


# ============ Constants ============

VERSION = "1.0.0"


# ============ Banner ============


def _print_banner() -> None:
    click.echo(
        click.style("  ◆ ", fg="cyan")
        + click.style("chainscript", fg="bright_white", bold=True)
        + click.style(f"  v{VERSION}", dim=True)
    )
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="chainscript")
@click.option("-v", "--verbose", is_flag=True, help="Log RPC traffic and gas decisions")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """chainscript - deploy, mint and call contracts on EVM chains."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        # httpx logs every request at INFO; the rpc client already does
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .commands.deploy import deploy
from .commands.batch_mint import batch_mint
from .commands.call import call
from .commands.send import receipt, send

cli.add_command(deploy)
cli.add_command(batch_mint)
cli.add_command(call)
cli.add_command(send)
cli.add_command(receipt)


# ============ Identity ============


@cli.command()
@click.option("--key-env", default=DEFAULT_KEY_ENV, show_default=True, help="Variable holding the key")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".env"),
    show_default=True,
)
def whoami(key_env: str, env_file: Path) -> None:
    """Show the address of the configured signing key."""
    load_env_file(env_file)
    private_key = os.environ.get(key_env)
    if not private_key:
        click.echo(f"No signing key found in ${key_env}.")
        sys.exit(1)
    try:
        account = load_account(private_key)
    except ChainscriptError as exc:
        click.secho(f"{exc.kind}: {exc}", fg="red")
        sys.exit(exc.exit_code)
    click.echo(f"Address: {account.address}")


# ============ Info ============


@cli.command()
@click.option("--key-env", default=DEFAULT_KEY_ENV, show_default=True, help="Variable holding the key")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".env"),
    show_default=True,
)
def info(key_env: str, env_file: Path) -> None:
    """Show configuration (keys masked)."""
    _print_banner()
    load_env_file(env_file)

    click.secho("  Config ─────────────────────────────────", fg="cyan")
    click.echo()

    rpc_url: Optional[str] = os.environ.get(RPC_URL_ENV)
    click.echo(
        click.style("  RPC URL:     ", dim=True)
        + (click.style(rpc_url, fg="bright_white") if rpc_url else click.style("not set", fg="yellow"))
    )

    private_key = os.environ.get(key_env)
    if private_key:
        click.echo(click.style(f"  ${key_env}: ", dim=True) + mask_secret(private_key))
        try:
            address = load_account(private_key).address
            click.echo(click.style("  Address:     ", dim=True) + click.style(address, fg="bright_white"))
        except ChainscriptError:
            click.echo(click.style("  Address:     ", dim=True) + click.style("invalid key", fg="red"))
    else:
        click.echo(click.style(f"  ${key_env}: ", dim=True) + click.style("not set", fg="yellow"))

    click.echo()
    click.secho("  Commands ───────────────────────────────", fg="cyan")
    click.echo()

    commands = [
        ("deploy    ", "Deploy a contract from a build artifact"),
        ("batch-mint", "Mint many token URIs in one transaction"),
        ("call      ", "Static call, print the decoded result"),
        ("send      ", "Send a contract transaction"),
        ("receipt   ", "Wait for a transaction receipt"),
        ("whoami    ", "Show the signing address"),
    ]
    for cmd, desc in commands:
        click.echo(
            click.style("  ", dim=True)
            + click.style(cmd, fg="bright_white", bold=True)
            + click.style("  ◇  ", fg="cyan")
            + click.style(desc, dim=True)
        )

    click.echo()


# ============ Entry Points ============


def main() -> None:
    """chainscript CLI entry point."""
    # Ensure UTF-8 output on Windows (for the box-drawing banner)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()
