"""Tests for storage.bus: the result notification bus."""

from __future__ import annotations

import logging

import pytest

from storefront.storage.bus import ResultBus


def test_publish_reaches_listeners() -> None:
    bus: ResultBus[int] = ResultBus()
    seen: list[int] = []
    bus.register(seen.append)
    bus.publish(1)
    bus.publish(2)
    assert seen == [1, 2]
    assert len(bus) == 1


def test_unregister() -> None:
    bus: ResultBus[int] = ResultBus()
    seen: list[int] = []
    bus.register(seen.append)
    bus.unregister(seen.append)
    bus.unregister(seen.append)
    bus.publish(1)
    assert seen == []
    assert len(bus) == 0


def test_listener_error_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    bus: ResultBus[str] = ResultBus()
    seen: list[str] = []

    def broken(_value: str) -> None:
        raise RuntimeError("listener exploded")

    bus.register(broken)
    bus.register(seen.append)
    with caplog.at_level(logging.ERROR, logger="storefront.storage.bus"):
        bus.publish("x")

    assert seen == ["x"]
    assert "listener exploded" in caplog.text
