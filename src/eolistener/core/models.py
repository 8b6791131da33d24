"""Core data models for the watch session.

This module defines:
- `ContractAddress` / `EventTopic`: fixed-width chain identifiers.
- `LogFilterSpec`: immutable description of one `eth_getLogs` query.
- `EventLog`: raw RPC log record consumed by the decoder.
- `DecodedEvent`: typed, named decoding of one log handed to the sink.
- `EventKind`: which watched event (and which watermark) a log belongs to.

Design notes
------------
- Addresses and topics are stored as raw bytes; hex renderings are derived.
- Block numbers on `EventLog` are optional because pending logs carry none;
  the decoder refuses such logs.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_utils import decode_hex, remove_0x_prefix, to_checksum_address

from eolistener.core.errors import ConfigError

ADDRESS_SIZE = 20
TOPIC_SIZE = 32


class EventKind(str, Enum):
    """Watched event types. Each one owns an ABI definition and a watermark."""

    SETTLEMENT = "settlement"
    BRIDGE = "bridge"


# === Fixed-width identifiers ===


@dataclass(slots=True, frozen=True)
class ContractAddress:
    """20-byte contract address."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != ADDRESS_SIZE:
            raise ConfigError(f"Address must be {ADDRESS_SIZE} bytes, got {len(self.raw)}")

    @classmethod
    def parse(cls, value: str) -> ContractAddress:
        """Parse a 0x-prefixed (or bare) 40-char hex string."""
        if not isinstance(value, str):
            raise ConfigError(f"Address must be a hex string, got {type(value).__name__}")
        body = remove_0x_prefix(value.strip())
        if len(body) != 2 * ADDRESS_SIZE:
            raise ConfigError(f"Invalid address length ({len(body)} hex chars): {value!r}")
        try:
            raw = decode_hex(body)
        except ValueError as e:
            raise ConfigError(f"Invalid hex address {value!r}: {e}") from e
        return cls(raw)

    @property
    def lower(self) -> str:
        return "0x" + self.raw.hex()

    @property
    def checksum(self) -> str:
        return to_checksum_address(self.lower)

    def __str__(self) -> str:
        return self.checksum


@dataclass(slots=True, frozen=True)
class EventTopic:
    """32-byte log topic (keccak256 of the event signature for topic0)."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != TOPIC_SIZE:
            raise ValueError(f"Topic must be {TOPIC_SIZE} bytes, got {len(self.raw)}")

    @classmethod
    def from_hex(cls, value: str) -> EventTopic:
        return cls(decode_hex(value))

    @property
    def hex(self) -> str:
        """Lowercase 0x-prefixed hex, the form RPC nodes return."""
        return "0x" + self.raw.hex()

    def __str__(self) -> str:
        return self.hex


# === Filter ===


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


@dataclass(slots=True, frozen=True)
class LogFilterSpec:
    """Immutable `eth_getLogs` filter scoped to a single contract.

    `to_block=None` means "latest"; `from_block=None` leaves the node default.
    """

    address: ContractAddress
    topics: tuple[EventTopic, ...]
    from_block: int | None = None
    to_block: int | None = None

    def __post_init__(self) -> None:
        if not self.topics:
            raise ConfigError("LogFilterSpec needs at least one topic")
        if self.from_block is not None and self.from_block < 0:
            raise ConfigError("from_block must be >= 0")
        if (
            self.from_block is not None
            and self.to_block is not None
            and self.from_block > self.to_block
        ):
            raise ConfigError("from_block must be <= to_block")

    @classmethod
    def for_event(
        cls,
        address: str | ContractAddress,
        topic: EventTopic,
        *,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> LogFilterSpec:
        """Build a single-topic filter, parsing `address` if given as a string."""
        addr = address if isinstance(address, ContractAddress) else ContractAddress.parse(address)
        return cls(address=addr, topics=(topic,), from_block=from_block, to_block=to_block)

    def to_params(self) -> dict[str, Any]:
        """Render as the filter object of an `eth_getLogs` call."""
        params: dict[str, Any] = {
            "address": self.address.lower,
            "topics": [[t.hex for t in self.topics]],
            "toBlock": "latest" if self.to_block is None else to_hex_block(self.to_block),
        }
        if self.from_block is not None:
            params["fromBlock"] = to_hex_block(self.from_block)
        return params


# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int | None
    tx_hash: str = ""  # lowercased 0x...
    log_index: int | None = None


# === Decoded record ===


@dataclass(slots=True, frozen=True)
class DecodedField:
    """One named, typed value of a decoded event."""

    name: str
    type: str
    value: Any
    indexed: bool = False


def _jsonable(v: Any) -> Any:
    """Render decoded values for JSON (big ints as strings, bytes as hex)."""
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return str(v)
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return v


@dataclass(slots=True, frozen=True)
class DecodedEvent:
    """Decoded log: ordered fields plus the block and kind that produced it."""

    kind: EventKind
    name: str
    fields: tuple[DecodedField, ...]
    block_number: int
    tx_hash: str = ""
    log_index: int | None = None
    address: str = ""

    @property
    def values(self) -> Mapping[str, Any]:
        """Field name → value, in declaration order."""
        return {f.name: f.value for f in self.fields}

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "event": self.name,
            "block_number": self.block_number,
            "tx_hash": self.tx_hash,
            "log_index": self.log_index,
            "contract": self.address,
            "values": {f.name: _jsonable(f.value) for f in self.fields},
        }

    def to_json_line(self) -> str:
        """Serialize as a compact JSON line."""
        return json.dumps(self.to_dict(), separators=(",", ":")) + "\n"
