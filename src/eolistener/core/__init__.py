"""Core data models, configuration, errors and watermark tracking.

This package provides:
- Data models (EventLog, LogFilterSpec, DecodedEvent, ContractAddress, EventTopic)
- Configuration (WatcherConfig)
- Error taxonomy (ConfigError, TransportError, DecodeError, ...)
- WatermarkTracker
"""

from eolistener.core.config import WatcherConfig
from eolistener.core.errors import (
    AbiEventNotFound,
    ConfigError,
    DecodeError,
    EoListenerError,
    MalformedField,
    MissingBlockNumber,
    TransportError,
)
from eolistener.core.models import (
    ContractAddress,
    DecodedEvent,
    DecodedField,
    EventKind,
    EventLog,
    EventTopic,
    LogFilterSpec,
)
from eolistener.core.watermark import WatermarkTracker

__all__ = [
    "WatcherConfig",
    "AbiEventNotFound",
    "ConfigError",
    "DecodeError",
    "EoListenerError",
    "MalformedField",
    "MissingBlockNumber",
    "TransportError",
    "ContractAddress",
    "DecodedEvent",
    "DecodedField",
    "EventKind",
    "EventLog",
    "EventTopic",
    "LogFilterSpec",
    "WatermarkTracker",
]
