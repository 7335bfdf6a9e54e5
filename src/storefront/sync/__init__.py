"""Local-first sync of storefront collections with an optional remote store."""

from __future__ import annotations

from storefront.sync.config import FallbackMode, get_fallback_mode, reset_fallback_mode
from storefront.sync.engine import RemoteResult, SyncEngine
from storefront.sync.identity import GuestDataPolicy, IdentityTransitionHandler, Transition
from storefront.sync.moderation import BulkResult, ModerationWorkflow
from storefront.sync.remote import RemoteStore

__all__ = [
    "BulkResult",
    "FallbackMode",
    "GuestDataPolicy",
    "IdentityTransitionHandler",
    "ModerationWorkflow",
    "RemoteResult",
    "RemoteStore",
    "SyncEngine",
    "Transition",
    "get_fallback_mode",
    "reset_fallback_mode",
]
