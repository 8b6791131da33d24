"""Event specification primitives.

Defines lightweight dataclasses to describe how to decode events:
- `TopicFieldSpec` / `DataFieldSpec`: typed sources for indexed topics / data values
- `EventSpec`: one ABI event definition (topic0, fields, declaration order)
"""

from __future__ import annotations

from dataclasses import dataclass

from eolistener.core.models import EventTopic


@dataclass(frozen=True)
class TopicFieldSpec:
    """Describe one indexed field (by 0-based topic index and ABI type)."""

    name: str
    index: int  # topics[0] is the signature hash, so indexed fields start at 1
    type: str  # e.g., "address", "uint256", "bytes32", "string"


@dataclass(frozen=True)
class DataFieldSpec:
    """Describe one non-indexed field (0-based position in the data tuple)."""

    name: str
    position: int
    type: str


@dataclass(frozen=True)
class EventSpec:
    """One event decoding rule.

    `field_order` lists every field name in ABI declaration order; the decoder
    emits fields in that order regardless of where they were read from.
    """

    name: str
    topic0: EventTopic
    topic_fields: tuple[TopicFieldSpec, ...]
    data_fields: tuple[DataFieldSpec, ...]
    field_order: tuple[str, ...]

    def __post_init__(self) -> None:
        names = [f.name for f in self.topic_fields] + [f.name for f in self.data_fields]
        if len(set(names)) != len(names):
            raise ValueError(f"{self.name}: duplicate field names {names}")
        if sorted(names) != sorted(self.field_order):
            raise ValueError(f"{self.name}: field_order does not match declared fields")
        for i, tf in enumerate(self.topic_fields):
            if tf.index != i + 1:
                raise ValueError(f"{self.name}: topic field {tf.name} has index {tf.index}, expected {i + 1}")
        for i, df in enumerate(self.data_fields):
            if df.position != i:
                raise ValueError(f"{self.name}: data field {df.name} has position {df.position}, expected {i}")

    @property
    def expected_topic_count(self) -> int:
        return 1 + len(self.topic_fields)

    @property
    def field_count(self) -> int:
        return len(self.field_order)
