"""Decoding utilities: hex payloads and typed parsers for topics / data."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import ABITypeError, DecodingError, EncodingError, ParseError
from eth_abi.grammar import TupleType
from eth_abi.grammar import parse as parse_abi_type
from eth_utils import decode_hex

from eolistener.core.errors import MalformedField

from .specs import DataFieldSpec, TopicFieldSpec

WORD_SIZE = 32

# Anything eth_abi (or the hex codec) raises on bad input.
ABI_ERRORS = (DecodingError, EncodingError, ParseError, ABITypeError, ValueError, OverflowError, TypeError)


def data_bytes(data_hex: str) -> bytes:
    """Decode the `data` hex of a log; invalid hex is a malformed log."""
    if not data_hex or data_hex in ("0x", "0X"):
        return b""
    try:
        return decode_hex(data_hex)
    except ValueError as e:
        raise MalformedField(f"invalid data hex: {e}") from e


def is_hashed_topic_type(abi_type: str) -> bool:
    """True for types an indexed field stores as keccak256 of its encoding.

    That is every reference type: string, bytes, any array and any tuple.
    """
    try:
        parsed = parse_abi_type(abi_type)
        return parsed.is_dynamic or parsed.is_array or isinstance(parsed, TupleType)
    except (ParseError, ABITypeError) as e:
        raise MalformedField(f"unsupported ABI type {abi_type!r}: {e}") from e


def parse_topic_field(topic_hex: str, spec: TopicFieldSpec) -> Any:
    """Parse one indexed topic according to the declared type.

    Indexed reference types are stored on chain as their keccak256 hash, so
    the raw 32-byte topic is returned for those.
    """
    try:
        raw = decode_hex(topic_hex)
    except ValueError as e:
        raise MalformedField(f"{spec.name}: invalid topic hex {topic_hex!r}") from e
    if len(raw) != WORD_SIZE:
        raise MalformedField(f"{spec.name}: topic is {len(raw)} bytes, expected {WORD_SIZE}")
    if is_hashed_topic_type(spec.type):
        return raw
    try:
        return decode([spec.type], raw)[0]
    except ABI_ERRORS as e:
        raise MalformedField(f"{spec.name}: cannot decode topic as {spec.type}: {e}") from e


def parse_data_fields(data: bytes, specs: Sequence[DataFieldSpec]) -> dict[str, Any]:
    """Decode the `data` section into {field name: value}.

    The payload must be the canonical ABI encoding of the non-indexed fields:
    a whole number of words, strictly padded, with no trailing bytes.
    """
    if len(data) % WORD_SIZE:
        raise MalformedField(f"data length {len(data)} is not a multiple of {WORD_SIZE}")
    if not specs:
        if data:
            raise MalformedField(f"unexpected {len(data)} data bytes for an event without data fields")
        return {}

    types = [df.type for df in specs]
    try:
        values = decode(types, data)
    except ABI_ERRORS as e:
        raise MalformedField(f"cannot decode data as ({','.join(types)}): {e}") from e

    # Re-encoding gives the exact length the layout implies.
    expected = len(encode(types, values))
    if expected != len(data):
        raise MalformedField(f"data length {len(data)} inconsistent with layout ({','.join(types)}), expected {expected}")

    return {df.name: v for df, v in zip(specs, values)}
