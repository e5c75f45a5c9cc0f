from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Union

from eth_utils import is_hex


WEI_PER_GWEI = 10**9
WEI_PER_ETHER = 10**18


def parse_quantity(value: Union[str, int]) -> int:
    """Parse a decimal or 0x-prefixed hex quantity (e.g. ``0x1C9C380``)."""
    if isinstance(value, int):
        return value
    text = value.strip().replace("_", "")
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def parse_units(amount: Union[str, int, float, Decimal], decimals: int = 18) -> int:
    """Convert a human amount into base units, e.g. ``parse_units("10", 9)``."""
    with localcontext() as ctx:
        ctx.prec = 80
        return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


def gwei_to_wei(amount: Union[str, int, float, Decimal]) -> int:
    return parse_units(amount, 9)


def format_units(value: int, decimals: int = 18) -> str:
    """Render base units as a plain decimal string without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = 80
        quantized = Decimal(value) / (Decimal(10) ** decimals)
        return format(quantized.normalize(), "f")


def format_ether(value: int) -> str:
    return format_units(value, 18)


def hex_to_int(value: Union[str, int, None]) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


def hex_to_bytes(value: str) -> bytes:
    if value and not is_hex(value):
        raise ValueError(f"Not a hex string: {value!r}")
    raw = value[2:] if value.startswith(("0x", "0X")) else value
    if len(raw) % 2:
        raw = "0" + raw
    return bytes.fromhex(raw)


def is_tx_hash(value: str) -> bool:
    """True for a 0x-prefixed 32-byte hex string."""
    return (
        isinstance(value, str)
        and len(value) == 66
        and value.startswith("0x")
        and is_hex(value)
    )


def mask_secret(secret: str, keep: int = 4) -> str:
    """Mask a private key for display: ``0x1234...abcd``."""
    raw = secret[2:] if secret.startswith("0x") else secret
    if len(raw) <= keep * 2:
        return "0x" + "*" * len(raw)
    return f"0x{raw[:keep]}...{raw[-keep:]}"
