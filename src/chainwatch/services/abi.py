"""Call descriptors for single-function contract reads.

An alert carries a one-function ABI (`functionAbiString`) either as an
ethers-style human-readable signature::

    function balanceOf(address owner) view returns (uint256)

or as JSON (a single fragment object or a full ABI list). It is parsed once
into a CallDescriptor, which is all the generic read routine needs to encode
the calldata and decode the result. No attribute lookup by function name is
involved.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from eth_abi import decode, encode
from web3 import Web3

_NAME_RE = re.compile(r"^\s*(?:function\s+)?([A-Za-z_$][A-Za-z0-9_$]*)\s*\(")
_ARRAY_SUFFIX_RE = re.compile(r"^((?:\[\d*\])*)")
_ALIASES = {"uint": "uint256", "int": "int256", "byte": "bytes1"}


class AbiParseError(ValueError):
    """Raised when a function ABI cannot be parsed or does not describe the requested function."""


@dataclass(frozen=True)
class CallDescriptor:
    """Everything needed to encode a read call and decode its result."""

    function_name: str
    input_types: Tuple[str, ...]
    output_types: Tuple[str, ...]

    @property
    def signature(self) -> str:
        return f"{self.function_name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature)[:4])


def _matching_paren(text: str, open_idx: int) -> int:
    depth = 0
    for i in range(open_idx, len(text)):
        ch = text[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    raise AbiParseError(f"Unbalanced parentheses in ABI signature: {text!r}")


def _split_top_level(text: str) -> List[str]:
    """Split on commas that are not nested inside parentheses."""
    parts: List[str] = []
    depth = 0
    current = ""
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def _normalize_type(raw: str) -> str:
    """Canonicalize a human-readable parameter (drops names and location keywords)."""
    text = raw.strip()
    if text.startswith("tuple("):
        text = text[len("tuple") :]
    if text.startswith("("):
        close = _matching_paren(text, 0)
        inner = ",".join(_normalize_type(p) for p in _split_top_level(text[1:close]))
        suffix = _ARRAY_SUFFIX_RE.match(text[close + 1 :]).group(1)
        return f"({inner}){suffix}"

    token = text.split()[0] if text.split() else ""
    if not token:
        raise AbiParseError(f"Empty parameter type in {raw!r}")
    m = re.match(r"^([a-z]+[0-9]*)((?:\[\d*\])*)$", token)
    if not m:
        raise AbiParseError(f"Unsupported parameter type {token!r}")
    base, suffix = m.group(1), m.group(2)
    return _ALIASES.get(base, base) + suffix


def _parse_param_list(text: str) -> Tuple[str, ...]:
    return tuple(_normalize_type(p) for p in _split_top_level(text))


def _parse_human_readable(signature: str) -> CallDescriptor:
    m = _NAME_RE.match(signature)
    if not m:
        raise AbiParseError(f"Not a function signature: {signature!r}")
    name = m.group(1)
    open_idx = m.end() - 1
    close_idx = _matching_paren(signature, open_idx)
    inputs = _parse_param_list(signature[open_idx + 1 : close_idx])

    rest = signature[close_idx + 1 :]
    outputs: Tuple[str, ...] = ()
    returns_idx = rest.find("returns")
    if returns_idx >= 0:
        out_open = rest.find("(", returns_idx)
        if out_open < 0:
            raise AbiParseError(f"Missing return list in {signature!r}")
        out_close = _matching_paren(rest, out_open)
        outputs = _parse_param_list(rest[out_open + 1 : out_close])
    return CallDescriptor(function_name=name, input_types=inputs, output_types=outputs)


def _json_param_type(param: dict) -> str:
    ptype = str(param.get("type", ""))
    if ptype.startswith("tuple"):
        inner = ",".join(_json_param_type(c) for c in param.get("components") or [])
        return f"({inner}){ptype[len('tuple'):]}"
    return _normalize_type(ptype)


def _parse_json_fragment(fragment: dict) -> CallDescriptor:
    if fragment.get("type", "function") != "function":
        raise AbiParseError(f"ABI fragment is not a function: type={fragment.get('type')!r}")
    name = fragment.get("name")
    if not name:
        raise AbiParseError("ABI fragment has no name")
    return CallDescriptor(
        function_name=str(name),
        input_types=tuple(_json_param_type(p) for p in fragment.get("inputs") or []),
        output_types=tuple(_json_param_type(p) for p in fragment.get("outputs") or []),
    )


def _candidates(abi: Any) -> List[CallDescriptor]:
    if isinstance(abi, CallDescriptor):
        return [abi]
    if isinstance(abi, dict):
        return [_parse_json_fragment(abi)]
    if isinstance(abi, (list, tuple)):
        found: List[CallDescriptor] = []
        for item in abi:
            if isinstance(item, dict) and item.get("type", "function") != "function":
                continue
            found.extend(_candidates(item))
        return found
    if isinstance(abi, str):
        text = abi.strip()
        if text.startswith(("{", "[")):
            try:
                return _candidates(json.loads(text))
            except json.JSONDecodeError as exc:
                raise AbiParseError(f"Invalid JSON ABI: {exc}") from exc
        return [_parse_human_readable(text)]
    raise AbiParseError(f"Unsupported ABI value of type {type(abi).__name__}")


# PUBLIC_INTERFACE
def parse_function_abi(abi: Any, function_name: str) -> CallDescriptor:
    """Build the CallDescriptor for `function_name` from a one-function ABI."""
    for descriptor in _candidates(abi):
        if descriptor.function_name == function_name:
            return descriptor
    raise AbiParseError(f"ABI does not describe function {function_name!r}")


def _strip_array(abi_type: str) -> Tuple[str, Optional[str]]:
    m = re.match(r"^(.*)\[(\d*)\]$", abi_type)
    if not m:
        return abi_type, None
    return m.group(1), m.group(2)


def _coerce_arg(abi_type: str, value: Any) -> Any:
    """Coerce a stored argument (often a string) into what eth_abi expects for `abi_type`."""
    inner, length = _strip_array(abi_type)
    if length is not None:
        return [_coerce_arg(inner, v) for v in value]
    if abi_type.startswith("("):
        component_types = _split_top_level(abi_type[1:-1])
        return tuple(_coerce_arg(t, v) for t, v in zip(component_types, value))
    if abi_type.startswith(("uint", "int")):
        if isinstance(value, str):
            text = value.strip()
            return int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        return int(value)
    if abi_type == "address":
        return Web3.to_checksum_address(str(value))
    if abi_type == "bool":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1")
        return bool(value)
    if abi_type.startswith("bytes"):
        if isinstance(value, str):
            text = value[2:] if value.startswith(("0x", "0X")) else value
            return bytes.fromhex(text)
        return bytes(value)
    if abi_type == "string":
        return str(value)
    return value


# PUBLIC_INTERFACE
def build_calldata(descriptor: CallDescriptor, args: Sequence[Any]) -> bytes:
    """ABI-encode the call: 4-byte selector followed by the encoded arguments."""
    if len(args) != len(descriptor.input_types):
        raise ValueError(
            f"{descriptor.signature} expects {len(descriptor.input_types)} argument(s), got {len(args)}"
        )
    coerced = [_coerce_arg(t, v) for t, v in zip(descriptor.input_types, args)]
    return descriptor.selector + encode(list(descriptor.input_types), coerced)


# PUBLIC_INTERFACE
def decode_result(descriptor: CallDescriptor, raw: bytes) -> Any:
    """Decode return data: None for no outputs, the value for one output, a list otherwise."""
    if not descriptor.output_types:
        return None
    values = decode(list(descriptor.output_types), bytes(raw))
    if len(values) == 1:
        return values[0]
    return list(values)
