import json
import logging
from pathlib import Path

import pytest

from eolistener.core.interfaces import IEventSink
from eolistener.core.models import DecodedEvent, DecodedField, EventKind
from eolistener.sinks import FanOutSink, LoggingSink, QueueSink
from eolistener.storage.jsonl import JsonlEventSink


def _event(block: int) -> DecodedEvent:
    return DecodedEvent(
        kind=EventKind.SETTLEMENT,
        name="BlobIndexSettled",
        fields=(DecodedField("blobIndex", "string", f"blob-{block}"),),
        block_number=block,
    )


def test_jsonl_sink_appends_lines(tmp_path: Path) -> None:
    path = tmp_path / "out" / "events.jsonl"
    sink = JsonlEventSink(str(path))
    sink.deliver(_event(1))
    sink.deliver(_event(2))

    lines = path.read_text().splitlines()
    assert [json.loads(line)["block_number"] for line in lines] == [1, 2]
    assert sink.written == 2

    # reopening appends rather than truncating
    JsonlEventSink(str(path)).deliver(_event(3))
    assert len(path.read_text().splitlines()) == 3


@pytest.mark.asyncio
async def test_queue_sink_hands_events_in_order() -> None:
    sink = QueueSink()
    sink.deliver(_event(1))
    sink.deliver(_event(2))
    assert (await sink.queue.get()).block_number == 1
    assert (await sink.queue.get()).block_number == 2


def test_queue_sink_backlog_above_high_water_warns(caplog: pytest.LogCaptureFixture) -> None:
    sink = QueueSink(high_water=2)
    with caplog.at_level(logging.WARNING, logger="eolistener.sinks"):
        for block in range(1, 6):
            sink.deliver(_event(block))

    assert sink.queue.qsize() == 5
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "backlog 3 exceeds 2" in warnings[0].getMessage()


def test_queue_sink_rejects_bad_high_water() -> None:
    with pytest.raises(ValueError):
        QueueSink(high_water=0)


def test_logging_sink(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="eolistener.sinks"):
        LoggingSink().deliver(_event(4))
    assert "BlobIndexSettled at block 4" in caplog.text


def test_fan_out_sink_preserves_order() -> None:
    seen: list[tuple[str, int]] = []

    class Tagged:
        def __init__(self, tag: str) -> None:
            self.tag = tag

        def deliver(self, event: DecodedEvent) -> None:
            seen.append((self.tag, event.block_number))

    FanOutSink([Tagged("a"), Tagged("b")]).deliver(_event(5))
    assert seen == [("a", 5), ("b", 5)]


def test_sinks_satisfy_protocol(tmp_path: Path) -> None:
    for sink in (QueueSink(), LoggingSink(), FanOutSink([]), JsonlEventSink(str(tmp_path / "e.jsonl"))):
        assert isinstance(sink, IEventSink)
