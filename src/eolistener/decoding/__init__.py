"""Event decoding against contract ABIs.

This package provides:
- Topic hashing (`topic_for`) and signature parsing
- Event specification system (EventSpec, TopicFieldSpec, DataFieldSpec)
- Decoder that translates raw logs into DecodedEvent objects
"""

from eolistener.decoding.decoder import decode_event, require_block_number
from eolistener.decoding.specs import DataFieldSpec, EventSpec, TopicFieldSpec
from eolistener.decoding.topics import (
    BRIDGE_SIGNATURE,
    SETTLEMENT_SIGNATURE,
    canonical_signature,
    event_spec_from_signature,
    topic_for,
)

__all__ = [
    "decode_event",
    "require_block_number",
    "DataFieldSpec",
    "EventSpec",
    "TopicFieldSpec",
    "BRIDGE_SIGNATURE",
    "SETTLEMENT_SIGNATURE",
    "canonical_signature",
    "event_spec_from_signature",
    "topic_for",
]
