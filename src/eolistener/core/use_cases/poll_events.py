from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from eolistener.core.errors import ConfigError, MalformedField, MissingBlockNumber, TransportError
from eolistener.core.interfaces import IEventSink, ILogsProvider
from eolistener.core.models import DecodedEvent, EventKind, EventLog, LogFilterSpec
from eolistener.core.watermark import WatermarkTracker
from eolistener.decoding.decoder import decode_event, require_block_number
from eolistener.decoding.specs import EventSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WatchedEvent:
    """
    One watched event type: the ABI spec used to decode it and the filter
    used to query it. The engine keys its watermark trackers by `kind`.
    """

    kind: EventKind
    spec: EventSpec
    filter: LogFilterSpec

    def __post_init__(self) -> None:
        if self.spec.topic0 not in self.filter.topics:
            raise ConfigError(
                f"{self.kind.value}: filter topics do not include {self.spec.name} topic {self.spec.topic0}"
            )


class EngineState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    DRAINING = "draining"


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class PollStats:
    """
    Cumulative counters for a watch session.

    - cycles: completed polling cycles
    - logs_fetched: raw logs returned by the node (duplicates included)
    - delivered: events handed to the sink
    - duplicates: logs discarded because their block was already processed
    - malformed: logs skipped because they did not fit the ABI
    - aborted_batches: batches dropped because a log had no block number
    - transport_errors: queries that failed and counted as zero logs
    """

    cycles: int = 0
    logs_fetched: int = 0
    delivered: int = 0
    duplicates: int = 0
    malformed: int = 0
    aborted_batches: int = 0
    transport_errors: int = 0


@dataclass(kw_only=True)
class BatchResult:
    """Outcome of processing the logs of one event kind in one cycle."""

    kind: EventKind
    fetched: int = 0
    delivered: int = 0
    duplicates: int = 0
    malformed: int = 0
    aborted: bool = False
    transport_error: str | None = None
    watermark: int = 0


@dataclass(kw_only=True)
class CycleReport:
    """Per-cycle summary, batches listed in processing order."""

    batches: list[BatchResult] = field(default_factory=list)

    @property
    def delivered(self) -> int:
        return sum(b.delivered for b in self.batches)


# (block number, tx hash, log index)
_EventKey = tuple[int, str, int | None]


def _event_key(event: DecodedEvent) -> _EventKey:
    return (event.block_number, event.tx_hash, event.log_index)


@dataclass(slots=True)
class _QueryResult:
    watched: WatchedEvent
    logs: list[EventLog]
    error: str | None = None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


async def _sleep_until_stopped(stop: asyncio.Event, timeout: float) -> None:
    """Wait up to `timeout` seconds, returning early once `stop` is set."""
    try:
        await asyncio.wait_for(stop.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        return


class PollEngine:
    """
    Event-watermark polling engine.

    Each cycle queries every watched event concurrently, then drains the
    results: logs are checked against the kind's watermark, decoded, and
    delivered to the sink. The watermark advances to the highest delivered
    block of the batch once the batch is done.

    Watermarks live on the instance, so independent engines (e.g. one per
    contract) can run side by side.
    """

    def __init__(
        self,
        logs_provider: ILogsProvider,
        sink: IEventSink,
        watched: Sequence[WatchedEvent],
        *,
        start_block: int = 0,
        start_blocks: Mapping[EventKind, int] | None = None,
        poll_interval_s: float = 2.0,
    ) -> None:
        if not watched:
            raise ConfigError("PollEngine needs at least one watched event")
        kinds = [w.kind for w in watched]
        if len(set(kinds)) != len(kinds):
            raise ConfigError(f"Duplicate watched event kinds: {[k.value for k in kinds]}")
        if poll_interval_s < 0:
            raise ConfigError("poll_interval_s must be >= 0")

        self._logs_provider = logs_provider
        self._sink = sink
        self._watched = list(watched)
        self._poll_interval_s = poll_interval_s
        start_blocks = dict(start_blocks or {})
        self._trackers: dict[EventKind, WatermarkTracker] = {
            w.kind: WatermarkTracker(start_blocks.get(w.kind, start_block)) for w in self._watched
        }
        # delivered events above the watermark, left by an interrupted batch
        self._sent: dict[EventKind, set[_EventKey]] = {w.kind: set() for w in self._watched}
        self._state = EngineState.IDLE
        self.stats = PollStats()

    @property
    def state(self) -> EngineState:
        return self._state

    def watermark(self, kind: EventKind) -> int:
        return self._trackers[kind].watermark

    @property
    def watermarks(self) -> dict[EventKind, int]:
        return {kind: t.watermark for kind, t in self._trackers.items()}

    # ---------- fetching ----------

    async def _query(self, watched: WatchedEvent) -> _QueryResult:
        """Run one log query; a transport failure counts as zero logs."""
        try:
            logs = await self._logs_provider.get_logs(watched.filter)
        except TransportError as e:
            self.stats.transport_errors += 1
            logger.warning("%s log query failed, retrying next cycle: %s", watched.kind.value, e)
            return _QueryResult(watched, [], str(e))
        return _QueryResult(watched, list(logs))

    async def _fetch_all(self) -> list[_QueryResult]:
        """Query every watched event concurrently; results in completion order."""
        tasks = [asyncio.create_task(self._query(w)) for w in self._watched]
        results: list[_QueryResult] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                results.append(await next_done)
        except BaseException:
            for t in tasks:
                t.cancel()
            raise
        return results

    # ---------- draining ----------

    def _decode_batch(
        self,
        watched: WatchedEvent,
        tracker: WatermarkTracker,
        sent: set[_EventKey],
        logs: list[EventLog],
        result: BatchResult,
    ) -> list[DecodedEvent]:
        """Decode the not-yet-processed logs of a batch, in RPC order.

        Raises `MissingBlockNumber` before anything is delivered, so an
        aborted batch delivers nothing.
        """
        pending: list[DecodedEvent] = []
        for log in logs:
            block_number = require_block_number(log)
            if tracker.is_processed(block_number) or (block_number, log.tx_hash, log.log_index) in sent:
                result.duplicates += 1
                continue
            try:
                event = decode_event(spec=watched.spec, log=log, kind=watched.kind)
            except MalformedField as e:
                result.malformed += 1
                logger.warning(
                    "Skipping malformed %s log (block=%s tx=%s index=%s): %s",
                    watched.spec.name,
                    block_number,
                    log.tx_hash,
                    log.log_index,
                    e,
                )
                continue
            pending.append(event)
        return pending

    @staticmethod
    def _advance_past_delivered(
        tracker: WatermarkTracker,
        sent: set[_EventKey],
        delivered: list[DecodedEvent],
        undelivered: list[DecodedEvent],
    ) -> None:
        """Move the watermark over every block whose events all went out.

        Only blocks strictly below the lowest undelivered block qualify. Events
        delivered at or above that block are remembered in `sent` so the retry
        skips them.
        """
        floor = min(e.block_number for e in undelivered)
        done = [e.block_number for e in delivered if e.block_number < floor]
        if done:
            tracker.advance(max(done))
        sent.update(_event_key(e) for e in delivered if e.block_number >= floor)

    def _drain_batch(self, query: _QueryResult) -> BatchResult:
        watched = query.watched
        tracker = self._trackers[watched.kind]
        sent = self._sent[watched.kind]
        result = BatchResult(
            kind=watched.kind,
            fetched=len(query.logs),
            transport_error=query.error,
            watermark=tracker.watermark,
        )
        self.stats.logs_fetched += len(query.logs)

        try:
            pending = self._decode_batch(watched, tracker, sent, query.logs, result)
        except MissingBlockNumber as e:
            self.stats.aborted_batches += 1
            logger.error(
                "Aborting %s batch of %d logs, watermark stays at %d: %s",
                watched.kind.value,
                len(query.logs),
                tracker.watermark,
                e,
            )
            return BatchResult(
                kind=watched.kind,
                fetched=len(query.logs),
                aborted=True,
                watermark=tracker.watermark,
            )

        highest: int | None = None
        for i, event in enumerate(pending):
            logger.debug("Delivering %s at block %d", event.name, event.block_number)
            try:
                self._sink.deliver(event)
            except Exception:
                self._advance_past_delivered(tracker, sent, pending[:i], pending[i:])
                self.stats.delivered += result.delivered
                logger.error(
                    "Sink failed on %s at block %d after %d deliveries, watermark=%d",
                    event.name,
                    event.block_number,
                    result.delivered,
                    tracker.watermark,
                )
                raise
            result.delivered += 1
            if highest is None or event.block_number > highest:
                highest = event.block_number

        if highest is not None:
            tracker.advance(highest)
        if sent:
            sent.difference_update({k for k in sent if k[0] <= tracker.watermark})
        result.watermark = tracker.watermark

        self.stats.delivered += result.delivered
        self.stats.duplicates += result.duplicates
        self.stats.malformed += result.malformed
        if result.delivered:
            logger.info(
                "Delivered %d %s events, watermark=%d",
                result.delivered,
                watched.kind.value,
                result.watermark,
            )
        return result

    # ---------- cycle ----------

    async def poll_once(self) -> CycleReport:
        """Run one Polling → Draining cycle and return its report."""
        self._state = EngineState.POLLING
        try:
            results = await self._fetch_all()
            self._state = EngineState.DRAINING
            report = CycleReport(batches=[self._drain_batch(r) for r in results])
        finally:
            self._state = EngineState.IDLE
        self.stats.cycles += 1
        return report

    async def run(self, stop: asyncio.Event | None = None, *, max_cycles: int | None = None) -> PollStats:
        """
        Poll until `stop` is set (or `max_cycles` cycles have run).

        The stop signal is checked at the top of each cycle and interrupts the
        wait between cycles; an in-flight cycle always completes.
        """
        stop = stop or asyncio.Event()
        logger.info(
            "Watching %s from watermarks %s",
            ", ".join(w.spec.name for w in self._watched),
            {k.value: v for k, v in self.watermarks.items()},
        )
        cycles_run = 0
        while not stop.is_set():
            await self.poll_once()
            cycles_run += 1
            if max_cycles is not None and cycles_run >= max_cycles:
                break
            await _sleep_until_stopped(stop, self._poll_interval_s)
        logger.info("Polling stopped after %d cycles (%d events delivered)", self.stats.cycles, self.stats.delivered)
        return self.stats
