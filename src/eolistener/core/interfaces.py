from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from eolistener.core.models import DecodedEvent, EventLog, LogFilterSpec
from eolistener.decoding.specs import EventSpec


# ---------------------------------------------------------------------------
# ILogsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogsProvider(Protocol):
    """
    Abstract provider for fetching EVM logs.

    Domain expectations:
    - It returns EventLog objects already mapped into internal domain models.
    - Every transport-level failure surfaces as `TransportError`.
    """

    async def get_logs(self, filter_spec: LogFilterSpec) -> List[EventLog]:
        """
        Return all logs matching the filter, in the order the node lists them.

        Implementations:
        - RPC-based (`RPC` class)
        - In-memory or scripted provider for testing
        """
        ...


# ---------------------------------------------------------------------------
# IEventSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventSink(Protocol):
    """
    Downstream consumer of decoded events.

    Domain expectations:
    - `deliver` is called once per event, in delivery order.
    - The engine ignores any return value; a blocking sink blocks the loop.
    """

    def deliver(self, event: DecodedEvent) -> None:
        ...


# ---------------------------------------------------------------------------
# IAbiProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IAbiProvider(Protocol):
    """
    Source of event decoding specs.

    How the ABI is obtained (bundled artifact, file, explorer API) is an
    infrastructure concern.
    """

    def event_definition(self, name: str) -> EventSpec:
        """Return the spec of event `name` or raise `AbiEventNotFound`."""
        ...
