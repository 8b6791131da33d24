"""Topic hashing and signature-based spec building.

This module provides:
- `topic_for()`: keccak256 topic of a canonical event signature
- `event_spec_from_signature()`: build an `EventSpec` from a Solidity event
  declaration such as "Bridge(address indexed user, uint256 amount)"
"""

from __future__ import annotations

from eth_utils import keccak

from eolistener.core.models import EventTopic

from .specs import DataFieldSpec, EventSpec, TopicFieldSpec

# Canonical signatures of the Executable Oracle events.
SETTLEMENT_SIGNATURE = "BlobIndexSettled(address,bytes32,string)"
BRIDGE_SIGNATURE = "Bridge(address,address,uint256,uint256,string)"


def topic_for(signature: str) -> EventTopic:
    """Return keccak256(utf8(signature)) as an EventTopic.

    The signature is hashed verbatim; no grammar check or whitespace
    normalisation is applied.
    """
    if not signature:
        raise ValueError("Event signature must be non-empty")
    return EventTopic(keccak(text=signature))


# ---- Helpers: build specs from event signature ----
def _split_params(params_str: str) -> list[str]:
    """Split the parameter list by commas while respecting nested tuple types."""
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in params_str:
        if ch == "(":
            depth += 1
            buf.append(ch)
        elif ch == ")":
            depth -= 1
            buf.append(ch)
        elif ch == "," and depth == 0:
            items.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if buf:
        items.append("".join(buf).strip())
    return [i for i in items if i]


def _parse_param(p: str, fallback_name: str) -> tuple[str, str, bool]:
    """Parse one parameter fragment into (name, abi_type, indexed)."""
    s = " ".join(p.strip().split())
    indexed = False
    if " indexed " in f" {s} ":
        indexed = True
        s = f" {s} ".replace(" indexed ", " ").strip()
    tokens = s.split()
    if len(tokens) == 1:
        # Unnamed parameter
        return (fallback_name, tokens[0], indexed)
    # Last token is the name, the rest is the type (can include tuple syntax)
    return (tokens[-1], " ".join(tokens[:-1]), indexed)


def parse_signature(signature: str) -> tuple[str, list[tuple[str, str, bool]]]:
    """Split a declaration into (event name, [(name, type, indexed), ...])."""
    sig = signature.strip()
    open_paren = sig.find("(")
    close_paren = sig.rfind(")")
    if open_paren <= 0 or close_paren < open_paren:
        raise ValueError(f"Invalid event signature: {signature}")
    name = sig[:open_paren].strip()
    params_str = sig[open_paren + 1 : close_paren].strip()
    params = [_parse_param(part, fallback_name=f"arg{i}") for i, part in enumerate(_split_params(params_str))]
    return name, params


def canonical_signature(signature: str) -> str:
    """Strip names and `indexed` markers: "Bridge(address indexed u)" → "Bridge(address)"."""
    name, params = parse_signature(signature)
    return f"{name}({','.join(t for (_, t, _) in params)})"


def build_event_spec(name: str, params: list[tuple[str, str, bool]]) -> EventSpec:
    """Build an EventSpec from (name, type, indexed) triples in declaration order."""
    indexed_params = [(n, t) for (n, t, idx) in params if idx]
    data_params = [(n, t) for (n, t, idx) in params if not idx]
    canonical = f"{name}({','.join(t for (_, t, _) in params)})"
    return EventSpec(
        name=name,
        topic0=topic_for(canonical),
        topic_fields=tuple(TopicFieldSpec(n, i + 1, t) for i, (n, t) in enumerate(indexed_params)),
        data_fields=tuple(DataFieldSpec(n, i, t) for i, (n, t) in enumerate(data_params)),
        field_order=tuple(n for (n, _, _) in params),
    )


def event_spec_from_signature(signature: str) -> EventSpec:
    """Build an EventSpec from a Solidity event signature string.

    Example input:
      "Bridge(address indexed user, address indexed tokenAddress, uint256 tokenId, uint256 amount, string contentId)"
    """
    name, params = parse_signature(signature)
    return build_event_spec(name, params)
