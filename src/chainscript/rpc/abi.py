"""
Contract interfaces - ABI loading, call encoding and result decoding.

Interfaces are accepted in any of the shapes a deploy pipeline hands out:

- a JSON ABI list (``[{"type": "function", ...}]``)
- a Hardhat artifact (``{"abi": [...], "bytecode": "0x..."}``)
- a Foundry artifact (``{"abi": [...], "bytecode": {"object": "0x..."}}``)
- human-readable signatures (``"function name() view returns (string)"``)

Everything is normalised to JSON ABI entries; encoding goes through eth-abi.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import is_address, keccak, to_checksum_address

from ..errors import InvalidInterfaceError
from ..utils import hex_to_bytes, parse_quantity

# Error(string) and Panic(uint256) selectors emitted by solc
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")
PANIC_SELECTOR = bytes.fromhex("4e487b71")

PANIC_CODES: dict[int, str] = {
    0x00: "generic compiler panic",
    0x01: "assertion failed",
    0x11: "arithmetic overflow or underflow",
    0x12: "division or modulo by zero",
    0x21: "invalid enum value",
    0x22: "invalid storage byte array encoding",
    0x31: "pop on empty array",
    0x32: "array index out of bounds",
    0x41: "out of memory",
    0x51: "call to uninitialized internal function",
}

_ENTRY_TYPES = {"function", "constructor", "event", "error", "receive", "fallback"}
_MUTABILITY = {"pure", "view", "nonpayable", "payable"}
_NAME_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_TRUE_WORDS = {"true", "1", "yes"}
_FALSE_WORDS = {"false", "0", "no"}


# ---------------------------------------------------------------------------
# Human-readable signature parsing
# ---------------------------------------------------------------------------

def _matching_paren(text: str, start: int) -> int:
    depth = 0
    for index in range(start, len(text)):
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    raise InvalidInterfaceError(f"Unbalanced parentheses in {text!r}")


def split_top_level(text: str) -> list[str]:
    """Split a parameter list on commas that are not inside a tuple."""
    parts: list[str] = []
    depth = 0
    current = ""
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        parts.append(current.strip())
    return parts


def _parse_param(text: str) -> dict[str, Any]:
    text = text.strip()
    if text.startswith("tuple("):
        text = text[5:]

    if text.startswith("("):
        close = _matching_paren(text, 0)
        components = [_parse_param(p) for p in split_top_level(text[1:close])]
        rest = text[close + 1:].strip()
        suffix_match = re.match(r"^((?:\[\d*\])*)\s*(.*)$", rest)
        suffix, tail = suffix_match.group(1), suffix_match.group(2)
        param: dict[str, Any] = {"type": "tuple" + suffix, "components": components}
    else:
        tokens = text.split()
        if not tokens:
            raise InvalidInterfaceError("Empty parameter in signature")
        param = {"type": _canonical_elementary(tokens[0])}
        tail = " ".join(tokens[1:])

    words = [w for w in tail.split() if w not in ("indexed", "memory", "calldata", "storage")]
    if "indexed" in tail.split():
        param["indexed"] = True
    param["name"] = words[0] if words else ""
    return param


def _canonical_elementary(type_str: str) -> str:
    match = re.match(r"^(uint|int)((?:\[\d*\])*)$", type_str)
    if match:
        return f"{match.group(1)}256{match.group(2)}"
    if type_str.startswith("byte") and not type_str.startswith("bytes"):
        return "bytes1" + type_str[4:]
    return type_str


def parse_signature(signature: str) -> dict[str, Any]:
    """
    Parse one human-readable ABI fragment into a JSON ABI entry.

    Examples:
        ``function balanceOf(address) view returns (uint256)``
        ``constructor(string name, string symbol)``
        ``error NotOwner(address caller)``
    """
    text = signature.strip().rstrip(";")
    head = re.match(r"^(function|constructor|event|error|receive|fallback)\b\s*", text)
    if head:
        kind = head.group(1)
        text = text[head.end():]
    else:
        kind = "function"

    if kind in ("receive", "fallback"):
        return {"type": kind, "stateMutability": "payable" if "payable" in text else "nonpayable"}

    open_index = text.find("(")
    if open_index < 0:
        raise InvalidInterfaceError(f"Malformed signature: {signature!r}")
    name = text[:open_index].strip()
    if kind != "constructor" and not _NAME_RE.match(name):
        raise InvalidInterfaceError(f"Malformed signature name: {signature!r}")

    close_index = _matching_paren(text, open_index)
    inputs = [_parse_param(p) for p in split_top_level(text[open_index + 1:close_index])]
    rest = text[close_index + 1:].strip()

    outputs: list[dict[str, Any]] = []
    returns = re.search(r"\breturns\s*\(", rest)
    if returns:
        out_open = returns.end() - 1
        out_close = _matching_paren(rest, out_open)
        outputs = [_parse_param(p) for p in split_top_level(rest[out_open + 1:out_close])]
        rest = rest[:returns.start()]

    modifiers = set(rest.split())
    mutability = next((m for m in ("pure", "view", "payable") if m in modifiers), "nonpayable")

    entry: dict[str, Any] = {"type": kind, "inputs": inputs}
    if kind != "constructor":
        entry["name"] = name
    if kind == "event":
        entry["anonymous"] = "anonymous" in modifiers
        return entry
    if kind == "error":
        return entry
    entry["stateMutability"] = mutability
    if kind == "function":
        entry["outputs"] = outputs
    return entry


# ---------------------------------------------------------------------------
# ABI normalisation
# ---------------------------------------------------------------------------

def normalize_abi(abi: Any) -> list[dict[str, Any]]:
    """
    Validate an ABI and convert human-readable fragments into JSON entries.

    Raises:
        InvalidInterfaceError: If the ABI is not a list of well-formed entries
    """
    if isinstance(abi, (str, bytes, dict)) or not isinstance(abi, Iterable):
        raise InvalidInterfaceError("ABI must be a list of entries or signatures")

    entries: list[dict[str, Any]] = []
    for item in abi:
        if isinstance(item, str):
            entry = parse_signature(item)
        elif isinstance(item, dict):
            entry = dict(item)
        else:
            raise InvalidInterfaceError(f"Unsupported ABI entry: {item!r}")

        kind = entry.get("type", "function")
        if kind not in _ENTRY_TYPES:
            raise InvalidInterfaceError(f"Unknown ABI entry type: {kind!r}")
        entry["type"] = kind
        if kind in ("function", "event", "error") and not entry.get("name"):
            raise InvalidInterfaceError(f"ABI {kind} entry without a name: {entry!r}")
        for key in ("inputs", "outputs"):
            params = entry.get(key, [])
            if not isinstance(params, list) or not all(
                isinstance(p, dict) and "type" in p for p in params
            ):
                raise InvalidInterfaceError(f"Malformed {key} in ABI entry {entry.get('name', kind)!r}")
        mutability = entry.get("stateMutability")
        if mutability is not None and mutability not in _MUTABILITY:
            raise InvalidInterfaceError(f"Unknown stateMutability {mutability!r}")
        entries.append(entry)

    return entries


def param_type(param: dict[str, Any]) -> str:
    """Canonical type string of an ABI parameter (tuples become ``(a,b)``)."""
    type_str = param["type"]
    if type_str.startswith("tuple"):
        inner = ",".join(param_type(c) for c in param.get("components", []))
        return f"({inner}){type_str[5:]}"
    return type_str


def input_types(entry: dict[str, Any]) -> list[str]:
    return [param_type(p) for p in entry.get("inputs", [])]


def output_types(entry: dict[str, Any]) -> list[str]:
    return [param_type(p) for p in entry.get("outputs", [])]


def signature_of(entry: dict[str, Any]) -> str:
    return f"{entry['name']}({','.join(input_types(entry))})"


def selector_of(entry: dict[str, Any]) -> bytes:
    # Keccak-256, not NIST SHA3-256
    return keccak(text=signature_of(entry))[:4]


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ContractDescriptor:
    abi: list[dict[str, Any]] = field(repr=False)
    address: Optional[str] = None
    bytecode: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_abi(
        cls,
        abi: Any,
        address: Optional[str] = None,
        bytecode: Optional[str] = None,
    ) -> "ContractDescriptor":
        return cls(
            abi=normalize_abi(abi),
            address=normalize_address(address) if address else None,
            bytecode=normalize_bytecode(bytecode) if bytecode else None,
        )

    @classmethod
    def from_artifact(
        cls,
        path: Path,
        address: Optional[str] = None,
    ) -> "ContractDescriptor":
        """Load an ABI JSON file or a Hardhat / Foundry build artifact."""
        abi, bytecode = load_artifact(path)
        return cls.from_abi(abi, address=address, bytecode=bytecode)

    def at(self, address: str) -> "ContractDescriptor":
        return replace(self, address=normalize_address(address))

    def functions(self) -> list[dict[str, Any]]:
        return [e for e in self.abi if e["type"] == "function"]

    def errors(self) -> list[dict[str, Any]]:
        return [e for e in self.abi if e["type"] == "error"]

    def has_function(self, name: str) -> bool:
        return any(e["name"] == name for e in self.functions())

    def constructor(self) -> Optional[dict[str, Any]]:
        return next((e for e in self.abi if e["type"] == "constructor"), None)

    def function(self, name: str, arg_count: Optional[int] = None) -> dict[str, Any]:
        """
        Find a function entry by name or full signature.

        ``name`` may be ``"batchMint"`` or ``"buy(uint256,address)"``.
        Overloads sharing a name are told apart by argument count.

        Raises:
            InvalidInterfaceError: If no entry (or more than one) matches
        """
        if "(" in name:
            wanted = name.replace(" ", "")
            for entry in self.functions():
                if signature_of(entry) == wanted:
                    return entry
            raise InvalidInterfaceError(f"Function {name} not found in ABI")

        candidates = [e for e in self.functions() if e["name"] == name]
        if arg_count is not None and len(candidates) > 1:
            candidates = [e for e in candidates if len(e.get("inputs", [])) == arg_count]
        if not candidates:
            raise InvalidInterfaceError(f"Function {name} not found in ABI")
        if len(candidates) > 1:
            options = ", ".join(signature_of(e) for e in candidates)
            raise InvalidInterfaceError(f"Function {name} is overloaded; use one of: {options}")
        return candidates[0]


def load_artifact(path: Path) -> tuple[list, Optional[str]]:
    """
    Read ``(abi, bytecode)`` from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidInterfaceError: If the JSON has no usable ABI
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"ABI file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        try:
            artifact = json.load(f)
        except json.JSONDecodeError as exc:
            raise InvalidInterfaceError(f"{path} is not valid JSON: {exc}") from exc

    if isinstance(artifact, list):
        return artifact, None
    if not isinstance(artifact, dict) or "abi" not in artifact:
        raise InvalidInterfaceError(f"{path} has no 'abi' field")

    bytecode = artifact.get("bytecode")
    if isinstance(bytecode, dict):
        # Foundry: {"object": "0x...", "sourceMap": ...}
        bytecode = bytecode.get("object")
    return artifact["abi"], bytecode or None


def normalize_address(address: str) -> str:
    # Mixed-case input with a wrong checksum is accepted and re-checksummed
    if not isinstance(address, str) or not is_address(address.lower()):
        raise InvalidInterfaceError(f"Not a 20-byte hex address: {address!r}")
    return to_checksum_address(address)


def normalize_bytecode(bytecode: str) -> str:
    bytecode = bytecode.strip()
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    try:
        hex_to_bytes(bytecode)
    except ValueError as exc:
        raise InvalidInterfaceError(
            "Bytecode is not a hex string (unlinked libraries?)"
        ) from exc
    if len(bytecode) <= 2:
        raise InvalidInterfaceError("Bytecode is empty")
    return bytecode


# ---------------------------------------------------------------------------
# Encoding / decoding
# ---------------------------------------------------------------------------

def _array_base(type_str: str) -> str:
    return type_str[:type_str.rindex("[")]


def coerce_arg(type_str: str, value: Any) -> Any:
    """
    Adapt loosely typed values (CLI/JSON input) to what eth-abi expects.

    Hex strings become bytes, numeric strings become ints, addresses are
    checksummed so lower-case input is accepted.
    """
    if type_str.endswith("]"):
        base = _array_base(type_str)
        return [coerce_arg(base, item) for item in value]
    if type_str.startswith("("):
        members = split_top_level(type_str[1:-1])
        return tuple(coerce_arg(t, v) for t, v in zip(members, value))
    if type_str == "address" and isinstance(value, str):
        return normalize_address(value)
    if type_str.startswith(("uint", "int")) and isinstance(value, str):
        return parse_quantity(value)
    if type_str.startswith("bytes") and isinstance(value, str):
        return hex_to_bytes(value)
    if type_str == "bool" and isinstance(value, str):
        flag = value.strip().lower()
        if flag in _TRUE_WORDS:
            return True
        if flag in _FALSE_WORDS:
            return False
        raise InvalidInterfaceError(f"{value!r} is not a boolean (use true or false)")
    return value


def encode_arguments(types: Sequence[str], args: Sequence[Any], label: str) -> bytes:
    if len(types) != len(args):
        raise InvalidInterfaceError(
            f"{label} expects {len(types)} argument(s), got {len(args)}"
        )
    if not types:
        return b""
    try:
        coerced = [coerce_arg(t, a) for t, a in zip(types, args)]
        return encode(list(types), coerced)
    except (EncodingError, TypeError, ValueError) as exc:
        raise InvalidInterfaceError(f"Cannot encode arguments for {label}: {exc}") from exc


def encode_call(entry: dict[str, Any], args: Sequence[Any]) -> str:
    """ABI-encode a function call to 0x-prefixed calldata."""
    encoded = encode_arguments(input_types(entry), args, signature_of(entry))
    return "0x" + selector_of(entry).hex() + encoded.hex()


def encode_deploy(bytecode: str, constructor: Optional[dict[str, Any]], args: Sequence[Any]) -> str:
    """Creation data: init bytecode followed by ABI-encoded constructor args."""
    types = input_types(constructor) if constructor else []
    encoded = encode_arguments(types, args, "constructor")
    return normalize_bytecode(bytecode) + encoded.hex()


def decode_result(entry: dict[str, Any], data: str) -> Any:
    """
    Decode return data by the entry's declared outputs.

    Returns:
        ``None`` for no outputs, the bare value for one, a tuple otherwise

    Raises:
        InvalidInterfaceError: If the data does not match the outputs
    """
    types = output_types(entry)
    if not types:
        return None

    try:
        raw = hex_to_bytes(data or "0x")
    except ValueError as exc:
        raise InvalidInterfaceError(f"{signature_of(entry)} returned malformed data: {exc}") from exc
    if not raw:
        raise InvalidInterfaceError(
            f"{signature_of(entry)} returned no data; is there a contract at this address "
            f"and does the ABI match it?"
        )
    try:
        decoded = decode(types, raw)
    except (DecodingError, UnicodeDecodeError) as exc:
        raise InvalidInterfaceError(
            f"Cannot decode result of {signature_of(entry)}: {exc}"
        ) from exc

    if len(decoded) == 1:
        return decoded[0]
    return decoded


def decode_revert_reason(data: Optional[str], abi: Sequence[dict[str, Any]] = ()) -> Optional[str]:
    """
    Turn revert data into a readable reason.

    Understands ``Error(string)``, ``Panic(uint256)`` and custom errors
    declared in ``abi``.  Returns ``None`` when nothing can be decoded.
    """
    if not data:
        return None
    try:
        raw = hex_to_bytes(data)
    except ValueError:
        return None
    if len(raw) < 4:
        return None

    selector, body = raw[:4], raw[4:]
    try:
        if selector == ERROR_STRING_SELECTOR:
            return decode(["string"], body)[0]
        if selector == PANIC_SELECTOR:
            code = decode(["uint256"], body)[0]
            return f"panic 0x{code:02x}: {PANIC_CODES.get(code, 'unknown panic code')}"
        for entry in abi:
            if entry.get("type") == "error" and selector_of(entry) == selector:
                values = decode(input_types(entry), body)
                return f"{entry['name']}({', '.join(repr(v) for v in values)})"
    except (DecodingError, UnicodeDecodeError):
        return None
    return None
