"""Tests for storage.operations: the moderation event log."""

from __future__ import annotations

from pathlib import Path

from storefront.core.events import create_event
from storefront.storage.operations import read_moderation_events, write_moderation_events


def _event(item_id: str, event_type: str = "status_changed") -> dict:
    return create_event(event_type, item_id, {"id": "ops", "role": "super_admin"}, {"to": "approved"})


def test_append_and_read(store_dir: Path) -> None:
    first, second = _event("item_a"), _event("item_b")
    assert write_moderation_events(store_dir, [first])
    assert write_moderation_events(store_dir, [second])
    assert [e["id"] for e in read_moderation_events(store_dir)] == [first["id"], second["id"]]


def test_filter_by_item(store_dir: Path) -> None:
    write_moderation_events(store_dir, [_event("item_a"), _event("item_b"), _event("item_a")])
    assert len(read_moderation_events(store_dir, "item_a")) == 2


def test_empty_batch_is_noop(store_dir: Path) -> None:
    assert write_moderation_events(store_dir, [])
    assert read_moderation_events(store_dir) == []


def test_torn_line_skipped(store_dir: Path) -> None:
    write_moderation_events(store_dir, [_event("item_a")])
    with open(store_dir / "events" / "moderation.jsonl", "a", encoding="utf-8") as fh:
        fh.write('{"id": "ev_trunc')
    assert len(read_moderation_events(store_dir)) == 1


def test_missing_log(tmp_path: Path) -> None:
    assert read_moderation_events(tmp_path) == []
    assert write_moderation_events(tmp_path, [_event("item_a")])
    assert (tmp_path / "events" / "moderation.jsonl").exists()
