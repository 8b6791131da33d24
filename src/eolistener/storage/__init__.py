"""Durable sinks for delivered events.

This package provides:
- JsonlEventSink: fsynced JSON-lines writer, one decoded event per line
"""

from eolistener.storage.jsonl import JsonlEventSink

__all__ = [
    "JsonlEventSink",
]
