from __future__ import annotations


class WatermarkTracker:
    """Highest block whose logs have been delivered, for one event kind.

    The value never decreases: `advance` with a lower block is a no-op.
    """

    __slots__ = ("_watermark",)

    def __init__(self, initial: int = 0) -> None:
        if initial < 0:
            raise ValueError("initial watermark must be >= 0")
        self._watermark = initial

    @property
    def watermark(self) -> int:
        return self._watermark

    def is_processed(self, block_number: int) -> bool:
        """True iff logs of `block_number` were already surfaced."""
        return block_number <= self._watermark

    def advance(self, block_number: int) -> bool:
        """Raise the watermark to `block_number`; return whether it moved."""
        if block_number > self._watermark:
            self._watermark = block_number
            return True
        return False

    def __repr__(self) -> str:
        return f"WatermarkTracker(watermark={self._watermark})"
