"""Unit tests for ABI loading, encoding and revert decoding."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from eth_abi import decode, encode
from eth_utils import to_checksum_address

from chainscript.errors import InvalidInterfaceError
from chainscript.rpc.abi import (
    ContractDescriptor,
    decode_result,
    decode_revert_reason,
    encode_call,
    encode_deploy,
    load_artifact,
    normalize_abi,
    parse_signature,
    selector_of,
    signature_of,
)

TOKEN_ABI = [
    "constructor()",
    "function name() view returns (string)",
    "function symbol() view returns (string)",
    "function totalSupply() view returns (uint256)",
    "function balanceOf(address) view returns (uint256)",
]

RECIPIENT = "0x8AF10C657337358111C0ABC2991b53EbF0B52C79"


class TestParseSignature:
    """Tests for human-readable ABI fragments."""

    def test_view_function_with_returns(self) -> None:
        entry = parse_signature("function balanceOf(address) view returns (uint256)")
        assert entry["type"] == "function"
        assert entry["name"] == "balanceOf"
        assert entry["stateMutability"] == "view"
        assert [p["type"] for p in entry["inputs"]] == ["address"]
        assert [p["type"] for p in entry["outputs"]] == ["uint256"]

    def test_constructor_without_name(self) -> None:
        entry = parse_signature("constructor()")
        assert entry == {"type": "constructor", "inputs": [], "stateMutability": "nonpayable"}

    def test_named_params_and_arrays(self) -> None:
        entry = parse_signature("function batchMint(address to, string[] memory tokenURIs)")
        assert signature_of(entry) == "batchMint(address,string[])"
        assert entry["inputs"][1]["name"] == "tokenURIs"
        assert entry["outputs"] == []
        assert entry["stateMutability"] == "nonpayable"

    def test_uint_alias_is_canonicalised(self) -> None:
        entry = parse_signature("function buy(uint id, address token, uint amount, address seller, uint price) payable")
        assert signature_of(entry) == "buy(uint256,address,uint256,address,uint256)"
        assert entry["stateMutability"] == "payable"

    def test_tuple_params(self) -> None:
        entry = parse_signature("function settle((uint256 id, address who)[] orders, bytes32 salt)")
        assert signature_of(entry) == "settle((uint256,address)[],bytes32)"
        assert entry["inputs"][0]["type"] == "tuple[]"

    def test_error_and_event(self) -> None:
        error = parse_signature("error NotOwner(address caller)")
        assert error == {
            "type": "error",
            "name": "NotOwner",
            "inputs": [{"type": "address", "name": "caller"}],
        }
        event = parse_signature("event Transfer(address indexed from, address indexed to, uint256 value)")
        assert event["inputs"][0]["indexed"] is True
        assert event["inputs"][0]["name"] == "from"

    def test_malformed_signature(self) -> None:
        with pytest.raises(InvalidInterfaceError):
            parse_signature("function broken(uint256")
        with pytest.raises(InvalidInterfaceError):
            parse_signature("function 9lives()")


class TestNormalizeAbi:
    """Tests for ABI validation."""

    def test_rejects_non_list(self) -> None:
        with pytest.raises(InvalidInterfaceError):
            normalize_abi({"abi": []})
        with pytest.raises(InvalidInterfaceError):
            normalize_abi("function name() view returns (string)")

    def test_rejects_unknown_entry_type(self) -> None:
        with pytest.raises(InvalidInterfaceError):
            normalize_abi([{"type": "modifier", "name": "onlyOwner"}])

    def test_rejects_function_without_name(self) -> None:
        with pytest.raises(InvalidInterfaceError):
            normalize_abi([{"type": "function", "inputs": []}])

    def test_rejects_malformed_inputs(self) -> None:
        with pytest.raises(InvalidInterfaceError):
            normalize_abi([{"type": "function", "name": "f", "inputs": [{"name": "x"}]}])

    def test_mixes_json_and_signatures(self) -> None:
        abi = normalize_abi(
            [
                {"type": "function", "name": "owner", "inputs": [], "outputs": [{"type": "address"}]},
                "function name() view returns (string)",
            ]
        )
        assert [e["name"] for e in abi] == ["owner", "name"]


class TestDescriptor:
    """Tests for ContractDescriptor lookups."""

    def test_address_is_checksummed(self) -> None:
        descriptor = ContractDescriptor.from_abi(TOKEN_ABI, address=RECIPIENT.lower())
        assert descriptor.address == to_checksum_address(RECIPIENT)

    def test_bad_address(self) -> None:
        with pytest.raises(InvalidInterfaceError):
            ContractDescriptor.from_abi(TOKEN_ABI, address="0x1234")

    def test_function_lookup(self) -> None:
        descriptor = ContractDescriptor.from_abi(TOKEN_ABI)
        assert descriptor.function("totalSupply")["name"] == "totalSupply"
        assert descriptor.constructor() is not None
        assert descriptor.has_function("balanceOf")
        assert not descriptor.has_function("mint")

    def test_missing_function(self) -> None:
        descriptor = ContractDescriptor.from_abi(TOKEN_ABI)
        with pytest.raises(InvalidInterfaceError, match="mint"):
            descriptor.function("mint")

    def test_overloads_by_arg_count_and_signature(self) -> None:
        descriptor = ContractDescriptor.from_abi(
            [
                "function safeMint(address to)",
                "function safeMint(address to, string uri)",
            ]
        )
        assert len(descriptor.function("safeMint", 2)["inputs"]) == 2
        assert len(descriptor.function("safeMint(address)")["inputs"]) == 1
        with pytest.raises(InvalidInterfaceError, match="overloaded"):
            descriptor.function("safeMint")


class TestArtifacts:
    """Tests for ABI / artifact files."""

    def test_plain_abi_list(self, tmp_path: Path) -> None:
        path = tmp_path / "ERC721.json"
        path.write_text(json.dumps([{"type": "function", "name": "ownerOf", "inputs": [{"type": "uint256"}]}]))
        abi, bytecode = load_artifact(path)
        assert abi[0]["name"] == "ownerOf"
        assert bytecode is None

    def test_hardhat_artifact(self, tmp_path: Path) -> None:
        path = tmp_path / "CMCcoin.json"
        path.write_text(json.dumps({"contractName": "CMCcoin", "abi": TOKEN_ABI, "bytecode": "0x6080"}))
        descriptor = ContractDescriptor.from_artifact(path)
        assert descriptor.bytecode == "0x6080"
        assert descriptor.address is None

    def test_foundry_artifact(self, tmp_path: Path) -> None:
        path = tmp_path / "Token.json"
        path.write_text(json.dumps({"abi": [], "bytecode": {"object": "6080", "sourceMap": ""}}))
        descriptor = ContractDescriptor.from_artifact(path)
        assert descriptor.bytecode == "0x6080"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_artifact(tmp_path / "nope.json")

    def test_not_an_abi(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"network": "bsc"}))
        with pytest.raises(InvalidInterfaceError):
            load_artifact(path)

    def test_unlinked_bytecode(self, tmp_path: Path) -> None:
        path = tmp_path / "Linked.json"
        path.write_text(json.dumps({"abi": [], "bytecode": "0x6080__$abc$__"}))
        with pytest.raises(InvalidInterfaceError, match="unlinked"):
            ContractDescriptor.from_artifact(path)


class TestEncoding:
    """Tests for calldata encoding and result decoding."""

    def test_known_selectors(self) -> None:
        transfer = parse_signature("function transfer(address to, uint256 amount) returns (bool)")
        balance_of = parse_signature("function balanceOf(address) view returns (uint256)")
        assert selector_of(transfer).hex() == "a9059cbb"
        assert selector_of(balance_of).hex() == "70a08231"

    def test_encode_call_accepts_loose_input(self) -> None:
        entry = parse_signature("function transfer(address to, uint256 amount) returns (bool)")
        calldata = encode_call(entry, [RECIPIENT.lower(), "1000000000000000000"])
        assert calldata.startswith("0xa9059cbb")
        to, amount = decode(["address", "uint256"], bytes.fromhex(calldata[10:]))
        assert to.lower() == RECIPIENT.lower()
        assert amount == 10**18

    def test_encode_bytes_from_hex(self) -> None:
        entry = parse_signature("function execute(address target, uint256 value, bytes data)")
        calldata = encode_call(entry, [RECIPIENT, 0, "0xdeadbeef"])
        _, _, data = decode(["address", "uint256", "bytes"], bytes.fromhex(calldata[10:]))
        assert data == b"\xde\xad\xbe\xef"

    def test_bool_spellings(self) -> None:
        entry = parse_signature("function setApprovalForAll(address operator, bool approved)")
        for text, expected in (("true", True), ("Yes", True), ("1", True), ("false", False), ("NO", False)):
            calldata = encode_call(entry, [RECIPIENT, text])
            assert decode(["address", "bool"], bytes.fromhex(calldata[10:]))[1] is expected

    def test_bool_typo_rejected(self) -> None:
        entry = parse_signature("function setApprovalForAll(address operator, bool approved)")
        for text in ("ture", "on", ""):
            with pytest.raises(InvalidInterfaceError, match="not a boolean"):
                encode_call(entry, [RECIPIENT, text])

    def test_argument_count_mismatch(self) -> None:
        entry = parse_signature("function balanceOf(address) view returns (uint256)")
        with pytest.raises(InvalidInterfaceError, match="expects 1"):
            encode_call(entry, [])

    def test_bad_argument_value(self) -> None:
        entry = parse_signature("function balanceOf(address) view returns (uint256)")
        with pytest.raises(InvalidInterfaceError):
            encode_call(entry, ["not-an-address"])

    def test_encode_deploy_appends_constructor_args(self) -> None:
        constructor = parse_signature("constructor(string name, string symbol)")
        data = encode_deploy("6080", constructor, ["CMCcoin", "CMC"])
        assert data.startswith("0x6080")
        assert decode(["string", "string"], bytes.fromhex(data[6:])) == ("CMCcoin", "CMC")

    def test_decode_single_multiple_and_none(self) -> None:
        name = parse_signature("function name() view returns (string)")
        pair = parse_signature("function reserves() view returns (uint112, uint112)")
        mint = parse_signature("function mint(address)")
        assert decode_result(name, "0x" + encode(["string"], ["CMCcoin"]).hex()) == "CMCcoin"
        assert decode_result(pair, "0x" + encode(["uint112", "uint112"], [1, 2]).hex()) == (1, 2)
        assert decode_result(mint, "0x") is None

    def test_decode_string_not_utf8(self) -> None:
        name = parse_signature("function name() view returns (string)")
        with pytest.raises(InvalidInterfaceError, match="Cannot decode"):
            decode_result(name, "0x" + encode(["bytes"], [b"\xff\xfe"]).hex())

    def test_decode_empty_return_data(self) -> None:
        name = parse_signature("function name() view returns (string)")
        with pytest.raises(InvalidInterfaceError, match="no data"):
            decode_result(name, "0x")


class TestRevertReasons:
    """Tests for revert data decoding."""

    def test_error_string(self) -> None:
        data = "0x08c379a0" + encode(["string"], ["Ownable: caller is not the owner"]).hex()
        assert decode_revert_reason(data) == "Ownable: caller is not the owner"

    def test_panic(self) -> None:
        data = "0x4e487b71" + encode(["uint256"], [0x11]).hex()
        assert decode_revert_reason(data) == "panic 0x11: arithmetic overflow or underflow"

    def test_custom_error(self) -> None:
        abi = normalize_abi(["error InsufficientAllowance(uint256 have, uint256 want)"])
        data = "0x" + selector_of(abi[0]).hex() + encode(["uint256", "uint256"], [1, 5]).hex()
        assert decode_revert_reason(data, abi) == "InsufficientAllowance(1, 5)"

    def test_error_string_not_utf8(self) -> None:
        data = "0x08c379a0" + encode(["bytes"], [b"\xff\xfe"]).hex()
        assert decode_revert_reason(data) is None

    def test_unknown_or_empty(self) -> None:
        assert decode_revert_reason(None) is None
        assert decode_revert_reason("0x") is None
        assert decode_revert_reason("0xdeadbeef") is None
