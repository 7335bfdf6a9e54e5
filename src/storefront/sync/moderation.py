"""Moderation workflow over a catalog sync engine.

Rules live in ``storefront.core.moderation``; this module looks items up
in the engine, enforces the rules, writes the result back through the
engine (so the local cache and remote store follow) and appends an event
to ``events/moderation.jsonl``.  A refused operation raises before any
mutation or event.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from storefront.core.actors import Actor
from storefront.core.entities import CatalogItem, ModerationStatus, Vendor
from storefront.core.errors import NotFound, PermissionDenied, StorefrontError, ValidationError
from storefront.core.events import create_event, utc_now
from storefront.core.ids import generate_item_id
from storefront.core.moderation import (
    PROTECTED_FIELDS,
    apply_transition,
    check_content_patch,
    check_transition,
    triage_order,
    validate_submission,
    visible_items,
)
from storefront.core.stats import catalog_stats, items_by_status
from storefront.storage.operations import read_moderation_events, write_moderation_events
from storefront.sync.engine import SyncEngine

logger = logging.getLogger(__name__)

VENDORS_CACHE_KEY = "vendors"

CONTENT_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "description",
        "price",
        "original_price",
        "category",
        "images",
        "sizes",
        "is_active",
    }
)


@dataclass
class BulkResult:
    """Outcome of a bulk operation: no rollback, failures reported per id."""

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    def to_dict(self) -> dict:
        return {
            "succeeded": list(self.succeeded),
            "failed": dict(self.failed),
            "success_count": self.success_count,
        }


class ModerationWorkflow:
    """Vendor and admin operations on one catalog engine."""

    def __init__(self, engine: SyncEngine) -> None:
        if engine.kind.table != "vendor_products":
            raise ValueError(f"Moderation needs a catalog engine, got '{engine.kind.name}'")
        self.engine = engine
        self.store_dir = engine.cache.cache_dir.parent

    # ------------------------------------------------------------------
    # Vendor operations
    # ------------------------------------------------------------------

    def create_item(
        self,
        actor: Actor,
        fields: Mapping[str, object],
        *,
        submit: bool = False,
    ) -> CatalogItem:
        """Create a catalog item as a draft, or submitted for review.

        Raises:
            PermissionDenied: *actor* is not a vendor.
            ValidationError: Unknown, protected or missing required fields.
        """
        to_status = ModerationStatus.PENDING if submit else ModerationStatus.DRAFT
        check_transition(actor, None, to_status)
        check_content_patch(fields)
        _check_content_fields(fields)
        validate_submission(fields)

        now = utc_now()
        original = fields.get("original_price")
        item = CatalogItem(
            id=generate_item_id(),
            owner_ref=actor.vendor_id or "",
            name=str(fields["name"]).strip(),
            price=float(fields["price"]),  # type: ignore[arg-type]
            category=str(fields["category"]),
            status=to_status,
            description=str(fields.get("description") or ""),
            original_price=float(original) if original is not None else None,  # type: ignore[arg-type]
            images=tuple(fields.get("images") or ()),  # type: ignore[arg-type]
            sizes=tuple(fields.get("sizes") or ()),  # type: ignore[arg-type]
            is_active=bool(fields.get("is_active", True)),
            created_at=now,
            updated_at=now,
        )
        self.engine.add(item)
        self._log("item_created", item.id, actor, {"status": to_status.value, "name": item.name})
        logger.info("created %s item %s for vendor %s", to_status.value, item.id, item.owner_ref)
        return item

    def submit(self, actor: Actor, item_id: str) -> CatalogItem:
        """Move a draft to pending review."""
        return self.transition(actor, item_id, ModerationStatus.PENDING)

    def edit_item(self, actor: Actor, item_id: str, patch: Mapping[str, object]) -> CatalogItem:
        """Apply a vendor content edit.  Status is never changed by an edit.

        Raises:
            NotFound: No item with *item_id*.
            PermissionDenied: *actor* does not own the item.
            ValidationError: *patch* touches protected or unknown fields, or
                leaves a submitted item incomplete.
        """
        item = self._find(item_id)
        _check_owner(actor, item, "products:update")
        check_content_patch(patch)
        _check_content_fields(patch)

        updated = self.engine.kind.apply_patch(item, dict(patch))
        if updated.status != ModerationStatus.DRAFT:
            validate_submission(updated.to_dict())

        self.engine.add(updated)
        self._log("item_updated", item.id, actor, {"fields": sorted(patch)})
        return updated

    def delete_item(self, actor: Actor, item_id: str) -> None:
        item = self._find(item_id)
        _check_owner(actor, item, "products:delete")
        self.engine.remove((item.id,))
        self._log("item_deleted", item.id, actor, {"status": item.status.value})
        logger.info("deleted item %s", item.id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(
        self,
        actor: Actor,
        item_id: str,
        to_status: ModerationStatus | str,
        reason: str | None = None,
    ) -> CatalogItem:
        """Move *item_id* to *to_status* if the state machine allows it.

        Raises:
            NotFound: No item with *item_id*.
            InvalidTransition: Illegal move, or a rejection without reason.
            PermissionDenied: *actor* lacks the capability or ownership.
            ValidationError: Submitting an incomplete item.
        """
        to_status = ModerationStatus(to_status)
        item = self._find(item_id)
        check_transition(actor, item, to_status, reason)
        if to_status == ModerationStatus.PENDING:
            validate_submission(item.to_dict())

        updated = apply_transition(item, to_status, reason=reason)
        self.engine.add(updated)

        data = {"from": item.status.value, "to": to_status.value}
        self._log(
            "status_changed",
            item.id,
            actor,
            data,
            reason=updated.rejection_reason if to_status == ModerationStatus.REJECTED else None,
        )
        logger.info(
            "item %s: %s -> %s by %s:%s",
            item.id,
            item.status.value,
            to_status.value,
            actor.role,
            actor.id,
        )
        return updated

    def approve(self, actor: Actor, item_id: str) -> CatalogItem:
        return self.transition(actor, item_id, ModerationStatus.APPROVED)

    def reject(self, actor: Actor, item_id: str, reason: str) -> CatalogItem:
        return self.transition(actor, item_id, ModerationStatus.REJECTED, reason)

    def bulk_approve(self, actor: Actor, item_ids: Iterable[str]) -> BulkResult:
        """Approve each id in turn.  Not atomic: earlier approvals stand."""
        result = BulkResult()
        for item_id in item_ids:
            try:
                self.approve(actor, item_id)
            except StorefrontError as exc:
                logger.warning("bulk approve: %s failed: %s", item_id, exc)
                result.failed[item_id] = str(exc)
            else:
                result.succeeded.append(item_id)
        return result

    # ------------------------------------------------------------------
    # Vendor-level approval
    # ------------------------------------------------------------------

    def set_vendor_approval(
        self,
        actor: Actor,
        vendor_id: str,
        approved: bool,
        reason: str | None = None,
    ) -> Vendor:
        """Flip the coarse ``vendors.is_approved`` gate.

        Raises:
            PermissionDenied: *actor* lacks ``vendors:approve`` / ``vendors:reject``.
            ValidationError: Rejecting without a reason.
        """
        capability = "vendors:approve" if approved else "vendors:reject"
        if not actor.is_admin or not actor.has_capability(capability):
            raise PermissionDenied(capability)
        if not approved and not (reason or "").strip():
            raise ValidationError("A reason is required to reject a vendor", fields=["reason"])

        cache = self.engine.cache
        rows = cache.read(VENDORS_CACHE_KEY)
        vendors = [Vendor.from_dict(row) for row in rows if row.get("id")]
        vendor = next((v for v in vendors if v.id == vendor_id), None)
        if vendor is None:
            vendor = Vendor(id=vendor_id, user_id="", is_approved=approved)
            vendors.append(vendor)
        else:
            vendor = Vendor(vendor.id, vendor.user_id, vendor.business_name, approved)
            vendors = [vendor if v.id == vendor_id else v for v in vendors]
        cache.write(VENDORS_CACHE_KEY, [v.to_dict() for v in vendors])

        engine = self.engine
        token = engine.owner.access_token
        engine.schedule_remote(
            "vendor_approval",
            (vendor_id,),
            lambda: engine.remote.set_vendor_approval(vendor_id, approved, token=token),  # type: ignore[union-attr]
        )

        self._log(
            "vendor_approval_changed",
            vendor_id,
            actor,
            {"approved": approved},
            reason=(reason or "").strip() or None,
        )
        logger.info("vendor %s approval set to %s", vendor_id, approved)
        return vendor

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, item_id: str) -> CatalogItem:
        return self._find(item_id)

    def queue(self) -> list[CatalogItem]:
        """Pending items in review order."""
        return triage_order(items_by_status(self._items(), ModerationStatus.PENDING))

    def visible(self) -> list[CatalogItem]:
        return visible_items(self._items())

    def stats(self) -> dict[str, int]:
        return catalog_stats(self._items())

    def history(self, item_id: str | None = None) -> list[dict]:
        return read_moderation_events(self.store_dir, item_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _items(self) -> list[CatalogItem]:
        return self.engine.items  # type: ignore[return-value]

    def _find(self, item_id: str) -> CatalogItem:
        item = self.engine.get((item_id,))
        if item is None:
            raise NotFound(f"Item {item_id} not found")
        return item  # type: ignore[return-value]

    def _log(
        self,
        event_type: str,
        item_id: str,
        actor: Actor,
        data: dict,
        *,
        reason: str | None = None,
    ) -> None:
        event = create_event(event_type, item_id, actor.to_dict(), data, reason=reason)
        write_moderation_events(self.store_dir, [event])


def _check_owner(actor: Actor, item: CatalogItem, capability: str) -> None:
    if not actor.is_vendor or item.owner_ref != actor.vendor_id:
        raise PermissionDenied(capability, f"Item {item.id} belongs to another vendor")


def _check_content_fields(fields: Mapping[str, object]) -> None:
    unknown = sorted(set(fields) - CONTENT_FIELDS - PROTECTED_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", fields=unknown)
