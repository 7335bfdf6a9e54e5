"""Moderation event creation and serialization."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from storefront.core.ids import generate_event_id

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

BUILTIN_EVENT_TYPES: frozenset[str] = frozenset(
    {
        "item_created",
        "item_updated",
        "item_deleted",
        "status_changed",
        "vendor_approval_changed",
    }
)


# ---------------------------------------------------------------------------
# Event construction
# ---------------------------------------------------------------------------


def create_event(
    type: str,
    item_id: str,
    actor: str | dict,
    data: dict,
    *,
    event_id: str | None = None,
    ts: str | None = None,
    reason: str | None = None,
) -> dict:
    """Build a complete event dict.

    *actor* may be a plain ``role:id`` string or a structured dict from
    ``Actor.to_dict()``.  The ``provenance`` object is included only when
    a *reason* is given (sparse dict).
    """
    if type not in BUILTIN_EVENT_TYPES:
        raise ValueError(f"Unknown event type: '{type}'")

    event: dict = {
        "schema_version": 1,
        "id": event_id if event_id is not None else generate_event_id(),
        "ts": ts if ts is not None else utc_now(),
        "type": type,
        "item_id": item_id,
        "actor": actor,
        "data": data,
    }

    if reason is not None:
        event["provenance"] = {"reason": reason}

    return event


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_event(event: dict) -> str:
    """Serialize an event to compact JSONL (one line, trailing newline)."""
    return json.dumps(event, sort_keys=True, separators=(",", ":")) + "\n"


def get_actor_display(actor: str | dict) -> str:
    """Return a human-readable display string for an actor."""
    if isinstance(actor, dict):
        return f"{actor.get('role', '?')}:{actor.get('id', '?')}"
    return actor


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def utc_now() -> str:
    """Return the current UTC time as an RFC 3339 string with ``Z`` suffix.

    Microsecond precision keeps ``created_at`` ordering stable for rapid
    successive adds.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
