"""Watch-session orchestration.

This package provides:
- Engine wiring from configuration (build_engine, build_watched_events)
- The `watch` convenience entry point used by the CLI
"""

from eolistener.orchestration.watcher import build_engine, build_watched_events, load_abi, watch

__all__ = [
    "build_engine",
    "build_watched_events",
    "load_abi",
    "watch",
]
