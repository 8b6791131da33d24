"""Error taxonomy for the listener.

- `ConfigError`: fatal, raised before the polling loop starts.
- `TransportError`: recoverable, absorbed per polling cycle.
- `DecodeError`: raised by the decoder; `MissingBlockNumber` aborts a batch,
  `MalformedField` skips a single log.
"""

from __future__ import annotations


class EoListenerError(Exception):
    """Base class for all listener errors."""


class ConfigError(EoListenerError):
    """Invalid or missing configuration (address, ABI event, env var...)."""


class AbiEventNotFound(ConfigError):
    """The contract ABI has no event (or function) with the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"ABI entry not found: {name}")
        self.name = name


class TransportError(EoListenerError):
    """RPC request failed at the HTTP or JSON-RPC level."""


class DecodeError(EoListenerError):
    """A raw log could not be turned into a DecodedEvent."""


class MissingBlockNumber(DecodeError):
    """The log carries no block number (e.g. a pending log)."""

    def __init__(self, tx_hash: str = "", log_index: int | None = None) -> None:
        super().__init__(f"Log missing block number (tx={tx_hash or '?'}, index={log_index})")
        self.tx_hash = tx_hash
        self.log_index = log_index


class MalformedField(DecodeError):
    """The log does not match the ABI event layout."""
