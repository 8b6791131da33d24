from __future__ import annotations

import os

from eolistener.core.models import DecodedEvent


class JsonlEventSink:
    """Append-only JSONL writer for delivered events.

    Each event is written as one line and flushed + fsynced before `deliver`
    returns, so a crash never leaves a half-written record behind.
    """

    def __init__(self, path: str) -> None:
        """Initialize the sink at the given path.

        Args:
            path: File path for the JSONL output (parent dirs are created)
        """
        self.path = path
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        open(self.path, "a").close()
        self.written = 0

    def deliver(self, event: DecodedEvent) -> None:
        self._write_line(self.path, event.to_json_line())
        self.written += 1

    @staticmethod
    def _write_line(path: str, line: str) -> None:
        """Write a line to file with immediate flush and sync."""
        with open(path, "a", buffering=1) as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
