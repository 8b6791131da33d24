"""Watch-session wiring: config → ABI specs → filters → PollEngine.

This module provides two layers:

1) `build_engine(...)`:
   - Pure application-layer wiring.
   - Depends ONLY on interfaces (ILogsProvider, IEventSink, IAbiProvider).
   - Resolves every ConfigError (address, ABI events) before polling starts.

2) `watch(...)` (convenience wrapper):
   - Wires the concrete RPC client and the ABI for CLI / script usage.
   - Owns the RPC lifecycle when it created the client.
"""

from __future__ import annotations

import asyncio
import logging

from eolistener.abi_events import AbiContract
from eolistener.clients.rpc import RPC
from eolistener.core.config import WatcherConfig
from eolistener.core.interfaces import IAbiProvider, IEventSink, ILogsProvider
from eolistener.core.models import ContractAddress, EventKind, LogFilterSpec
from eolistener.core.use_cases.poll_events import PollEngine, PollStats, WatchedEvent

logger = logging.getLogger(__name__)


def load_abi(config: WatcherConfig) -> AbiContract:
    """ABI from `config.abi_path`, or the bundled Executable Oracle ABI."""
    if config.abi_path is not None:
        return AbiContract(config.abi_path)
    return AbiContract.bundled()


def build_watched_events(
    *,
    abi: IAbiProvider,
    address: ContractAddress,
    start_block: int,
    settlement_event: str = "BlobIndexSettled",
    bridge_event: str = "Bridge",
) -> list[WatchedEvent]:
    """One single-topic filter per watched kind, from `start_block` to latest."""
    watched: list[WatchedEvent] = []
    for kind, event_name in ((EventKind.SETTLEMENT, settlement_event), (EventKind.BRIDGE, bridge_event)):
        spec = abi.event_definition(event_name)
        watched.append(
            WatchedEvent(
                kind=kind,
                spec=spec,
                filter=LogFilterSpec.for_event(address, spec.topic0, from_block=start_block),
            )
        )
        logger.debug("%s → %s topic %s", kind.value, spec.name, spec.topic0)
    return watched


def build_engine(
    *,
    config: WatcherConfig,
    abi: IAbiProvider,
    logs_provider: ILogsProvider,
    sink: IEventSink,
) -> PollEngine:
    """Build a PollEngine for `config`; raises ConfigError on bad setup."""
    watched = build_watched_events(
        abi=abi,
        address=config.address,
        start_block=config.start_block,
        settlement_event=config.settlement_event,
        bridge_event=config.bridge_event,
    )
    return PollEngine(
        logs_provider,
        sink,
        watched,
        start_block=config.start_block,
        poll_interval_s=config.poll_interval_s,
    )


async def watch(
    *,
    config: WatcherConfig,
    sink: IEventSink,
    stop: asyncio.Event | None = None,
    logs_provider: ILogsProvider | None = None,
    max_cycles: int | None = None,
) -> PollStats:
    """Run a watch session until `stop` is set.

    When `logs_provider` is omitted an `RPC` client is created for
    `config.rpc_url` and closed on exit.
    """
    abi = load_abi(config)
    owned_rpc: RPC | None = None
    if logs_provider is None:
        owned_rpc = RPC(config.rpc_url, timeout_s=config.timeout_s)
        logs_provider = owned_rpc
    try:
        engine = build_engine(config=config, abi=abi, logs_provider=logs_provider, sink=sink)
        logger.info("Watching contract %s via %s", config.address, config.rpc_url)
        return await engine.run(stop, max_cycles=max_cycles)
    finally:
        if owned_rpc is not None:
            await owned_rpc.aclose()
