import pytest

from eolistener.core.watermark import WatermarkTracker


def test_initial_watermark_is_processed() -> None:
    tracker = WatermarkTracker(100)
    assert tracker.watermark == 100
    assert tracker.is_processed(100)
    assert tracker.is_processed(0)
    assert not tracker.is_processed(101)


def test_advance_is_monotonic() -> None:
    tracker = WatermarkTracker()
    assert tracker.advance(7)
    assert not tracker.advance(5)
    assert not tracker.advance(7)
    assert tracker.watermark == 7
    assert tracker.advance(9)
    assert tracker.watermark == 9


def test_rejects_negative_initial() -> None:
    with pytest.raises(ValueError):
        WatermarkTracker(-1)


def test_repr() -> None:
    assert repr(WatermarkTracker(3)) == "WatermarkTracker(watermark=3)"
