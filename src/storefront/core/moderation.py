"""Catalog moderation rules: legal transitions, guards, visibility, triage.

This module is pure (no I/O).  ``storefront.sync.moderation`` applies these
rules to the catalog collection through the sync engine.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import TypedDict

from storefront.core.actors import Actor
from storefront.core.entities import CatalogItem, ModerationStatus
from storefront.core.errors import InvalidTransition, PermissionDenied, ValidationError
from storefront.core.events import utc_now


class TransitionRule(TypedDict):
    actor: str  # "vendor" or "admin"
    capability: str
    requires_reason: bool


DRAFT = ModerationStatus.DRAFT
PENDING = ModerationStatus.PENDING
APPROVED = ModerationStatus.APPROVED
REJECTED = ModerationStatus.REJECTED

# ``None`` is the pseudo-state of an item that does not exist yet.
# Approved and rejected are terminal: no outgoing transitions.
TRANSITIONS: dict[ModerationStatus | None, dict[ModerationStatus, TransitionRule]] = {
    None: {
        DRAFT: {"actor": "vendor", "capability": "products:create", "requires_reason": False},
        PENDING: {"actor": "vendor", "capability": "products:create", "requires_reason": False},
    },
    DRAFT: {
        PENDING: {"actor": "vendor", "capability": "products:submit", "requires_reason": False},
    },
    PENDING: {
        APPROVED: {"actor": "admin", "capability": "products:approve", "requires_reason": False},
        REJECTED: {"actor": "admin", "capability": "products:reject", "requires_reason": True},
    },
    APPROVED: {},
    REJECTED: {},
}

# Fields a vendor may never set through a content edit.
PROTECTED_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "owner_ref",
        "status",
        "created_at",
        "updated_at",
        "approved_at",
        "rejection_reason",
    }
)

REQUIRED_SUBMISSION_FIELDS: tuple[str, ...] = ("name", "price", "category", "description", "sizes")


# ---------------------------------------------------------------------------
# Transition checks
# ---------------------------------------------------------------------------


def validate_transition(
    from_status: ModerationStatus | None,
    to_status: ModerationStatus,
) -> bool:
    """Return ``True`` if *from_status* → *to_status* appears in the table."""
    return to_status in TRANSITIONS.get(from_status, {})


def required_capability(
    from_status: ModerationStatus | None,
    to_status: ModerationStatus,
) -> str | None:
    """Return the capability guarding a transition, or ``None`` if illegal."""
    rule = TRANSITIONS.get(from_status, {}).get(to_status)
    return rule["capability"] if rule else None


def check_transition(
    actor: Actor,
    item: CatalogItem | None,
    to_status: ModerationStatus | str,
    reason: str | None = None,
) -> None:
    """Raise if *actor* may not move *item* to *to_status*.

    Checks run in order: table legality, actor capability, preconditions.

    Raises:
        InvalidTransition: Not in the table, or a precondition (rejection
            reason) is missing.
        PermissionDenied: The actor lacks the role, capability or ownership.
    """
    to_status = ModerationStatus(to_status)
    from_status = item.status if item is not None else None

    if not validate_transition(from_status, to_status):
        raise InvalidTransition(
            from_status.value if from_status is not None else None,
            to_status.value,
        )

    rule = TRANSITIONS[from_status][to_status]
    capability = required_capability(from_status, to_status)
    if rule["actor"] == "admin":
        if not actor.is_admin or not actor.has_capability(capability):
            raise PermissionDenied(capability)
    else:
        if not actor.is_vendor:
            raise PermissionDenied(capability, f"Only vendors can {capability.split(':')[1]} items")
        if item is not None and item.owner_ref != actor.vendor_id:
            raise PermissionDenied(capability, f"Item {item.id} belongs to another vendor")

    if rule["requires_reason"] and not (reason or "").strip():
        raise InvalidTransition(
            from_status.value if from_status is not None else None,
            to_status.value,
            "A non-empty rejection reason is required",
        )


def apply_transition(
    item: CatalogItem,
    to_status: ModerationStatus | str,
    *,
    reason: str | None = None,
    now: str | None = None,
) -> CatalogItem:
    """Return a copy of *item* in *to_status* with moderation stamps set.

    Does not validate; call :func:`check_transition` first.
    """
    to_status = ModerationStatus(to_status)
    ts = now if now is not None else utc_now()
    changes: dict = {"status": to_status, "updated_at": ts}
    if to_status == APPROVED:
        changes["approved_at"] = ts
        changes["rejection_reason"] = None
    elif to_status == REJECTED:
        changes["rejection_reason"] = (reason or "").strip()
        changes["approved_at"] = None
    return dataclasses.replace(item, **changes)


# ---------------------------------------------------------------------------
# Submission validation
# ---------------------------------------------------------------------------


def validate_submission(fields: Mapping[str, object]) -> None:
    """Raise ``ValidationError`` if required catalog fields are missing.

    A price must be a positive number and at least one size is required.
    """
    missing: list[str] = []
    for name in REQUIRED_SUBMISSION_FIELDS:
        value = fields.get(name)
        if name == "price":
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                missing.append(name)
        elif name == "sizes":
            if not value or not any(str(s).strip() for s in value):  # type: ignore[union-attr]
                missing.append(name)
        elif not isinstance(value, str) or not value.strip():
            missing.append(name)
    if missing:
        raise ValidationError(
            f"Please fill in all required fields: {', '.join(missing)}",
            fields=missing,
        )


def check_content_patch(patch: Mapping[str, object]) -> None:
    """Raise ``ValidationError`` if a vendor edit touches protected fields."""
    protected = sorted(set(patch) & PROTECTED_FIELDS)
    if protected:
        raise ValidationError(
            f"Field(s) managed by moderation cannot be edited: {', '.join(protected)}",
            fields=protected,
        )


# ---------------------------------------------------------------------------
# Visibility and triage
# ---------------------------------------------------------------------------


def is_shopper_visible(item: CatalogItem) -> bool:
    """An item is visible to shoppers iff it is approved *and* active."""
    return item.status == APPROVED and item.is_active


def visible_items(items: Iterable[CatalogItem]) -> list[CatalogItem]:
    return [item for item in items if is_shopper_visible(item)]


def completeness_score(item: CatalogItem) -> int:
    """Advisory 0-100 score of how complete a listing is.

    Never gates a transition.  Weights: name 20, description 25, image 20,
    price 15, sizes 20.  Short names and descriptions earn partial credit.
    """
    score = 0

    name = item.name.strip()
    if len(name) >= 3:
        score += 20
    elif name:
        score += 10

    description = item.description.strip()
    if len(description) >= 50:
        score += 25
    elif description:
        score += 12

    if item.image:
        score += 20

    if item.price > 0:
        score += 15

    if item.sizes:
        score += 20

    return score


def triage_order(items: Iterable[CatalogItem]) -> list[CatalogItem]:
    """Order items for admin review: most complete first, then oldest first."""
    return sorted(
        items,
        key=lambda i: (-completeness_score(i), i.created_at or "", i.id),
    )
