from __future__ import annotations

from .abi_events import AbiContract
from .core.config import WatcherConfig
from .core.models import DecodedEvent, EventKind, EventLog, LogFilterSpec
from .core.use_cases.poll_events import PollEngine, PollStats, WatchedEvent
from .core.watermark import WatermarkTracker
from .decoding.decoder import decode_event
from .decoding.topics import BRIDGE_SIGNATURE, SETTLEMENT_SIGNATURE, topic_for

__all__ = [
    "AbiContract",
    "WatcherConfig",
    "DecodedEvent",
    "EventKind",
    "EventLog",
    "LogFilterSpec",
    "PollEngine",
    "PollStats",
    "WatchedEvent",
    "WatermarkTracker",
    "decode_event",
    "BRIDGE_SIGNATURE",
    "SETTLEMENT_SIGNATURE",
    "topic_for",
]
