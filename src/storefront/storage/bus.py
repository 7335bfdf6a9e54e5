"""Lightweight in-process result bus for post-write notifications.

Listeners are fire-and-forget: failures are logged but never raise or
interrupt the write path.  Each sync engine owns its own bus, so
listener lifetime follows the engine rather than the process.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultBus(Generic[T]):
    """Fan a published value out to registered listeners."""

    def __init__(self) -> None:
        self._listeners: list[Callable[[T], None]] = []

    def register(self, fn: Callable[[T], None]) -> None:
        """Register a callback invoked with every published value."""
        self._listeners.append(fn)

    def unregister(self, fn: Callable[[T], None]) -> None:
        """Remove a previously registered listener."""
        try:
            self._listeners.remove(fn)
        except ValueError:
            pass

    def publish(self, value: T) -> None:
        """Fire all registered listeners.  Never raises."""
        for fn in list(self._listeners):
            try:
                fn(value)
            except Exception as exc:
                logger.error("result listener error: %s", exc)

    def __len__(self) -> int:
        return len(self._listeners)
