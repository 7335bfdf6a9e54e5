"""Moderation event log: append and read ``events/moderation.jsonl``."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from storefront.core.events import serialize_event
from storefront.storage.fs import jsonl_append
from storefront.storage.locks import LockTimeout, store_lock

logger = logging.getLogger(__name__)

MODERATION_LOG = "moderation.jsonl"


def write_moderation_events(store_dir: Path, events: list[dict]) -> bool:
    """Append *events* to the moderation log under the log lock.

    The log is an audit trail next to the local cache; a failed append is
    logged and reported as ``False`` but never undoes the mutation it
    describes.
    """
    if not events:
        return True
    events_dir = store_dir / "events"
    locks_dir = store_dir / "locks"
    try:
        events_dir.mkdir(parents=True, exist_ok=True)
        locks_dir.mkdir(parents=True, exist_ok=True)
        with store_lock(locks_dir, "events_moderation"):
            for event in events:
                jsonl_append(events_dir / MODERATION_LOG, serialize_event(event))
    except (OSError, LockTimeout) as exc:
        logger.error("could not append moderation events: %s", exc)
        return False
    return True


def read_moderation_events(store_dir: Path, item_id: str | None = None) -> list[dict]:
    """Return logged events in append order, optionally for one item.

    Lines that fail to parse (e.g. a torn final write) are skipped.
    """
    path = store_dir / "events" / MODERATION_LOG
    if not path.exists():
        return []
    events: list[dict] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            continue
        if item_id is None or event.get("item_id") == item_id:
            events.append(event)
    return events
