"""ABI event decoder.

This module translates one raw `EventLog` into a `DecodedEvent` using the
`EventSpec` of the event it is expected to match. Failures are reported as
`DecodeError` subclasses, never as library exceptions:

- `MissingBlockNumber`: the log cannot be placed against a watermark.
- `MalformedField`: the log does not fit the ABI layout (topic0, topic count,
  data length, or a value that cannot be coerced to its type).
"""

from __future__ import annotations

from typing import Any

from eolistener.core.errors import MalformedField, MissingBlockNumber
from eolistener.core.models import DecodedEvent, DecodedField, EventKind, EventLog
from eolistener.decoding.specs import EventSpec
from eolistener.decoding.utils import data_bytes, parse_data_fields, parse_topic_field


def require_block_number(log: EventLog) -> int:
    """Return the log's block number or raise `MissingBlockNumber`."""
    if log.block_number is None:
        raise MissingBlockNumber(log.tx_hash, log.log_index)
    return log.block_number


def _check_topics(spec: EventSpec, log: EventLog) -> None:
    if not log.topics:
        raise MalformedField(f"{spec.name}: log has no topics")
    if log.topics[0].lower() != spec.topic0.hex:
        raise MalformedField(f"{spec.name}: topic0 {log.topics[0]} does not match {spec.topic0.hex}")
    if len(log.topics) != spec.expected_topic_count:
        raise MalformedField(
            f"{spec.name}: expected {spec.expected_topic_count} topics, got {len(log.topics)}"
        )


def decode_event(*, spec: EventSpec, log: EventLog, kind: EventKind) -> DecodedEvent:
    """Decode raw log (topics + data) into a `DecodedEvent`.

    The result has exactly `spec.field_count` fields, in declaration order.
    """
    block_number = require_block_number(log)
    _check_topics(spec, log)

    topic_vals: dict[str, Any] = {
        tf.name: parse_topic_field(log.topics[tf.index], tf) for tf in spec.topic_fields
    }
    data_vals = parse_data_fields(data_bytes(log.data_hex), spec.data_fields)

    types = {tf.name: (tf.type, True) for tf in spec.topic_fields}
    types.update((df.name, (df.type, False)) for df in spec.data_fields)

    fields = []
    for name in spec.field_order:
        typ, indexed = types[name]
        value = topic_vals[name] if indexed else data_vals[name]
        fields.append(DecodedField(name=name, type=typ, value=value, indexed=indexed))

    return DecodedEvent(
        kind=kind,
        name=spec.name,
        fields=tuple(fields),
        block_number=block_number,
        tx_hash=log.tx_hash,
        log_index=log.log_index,
        address=log.address,
    )
