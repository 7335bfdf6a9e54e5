"""Aggregates computed from in-memory collections.

Every function here is pure: totals and counts are derived on demand from
the collection and are never persisted next to it.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from storefront.core.entities import CartLine, CatalogItem, ModerationStatus, WishlistEntry


def cart_total(lines: Iterable[CartLine]) -> float:
    """Sum of ``price * quantity`` over all lines, rounded to cents."""
    return round(sum(line.product.price * line.quantity for line in lines), 2)


def cart_item_count(lines: Iterable[CartLine]) -> int:
    """Total number of units across all lines."""
    return sum(line.quantity for line in lines)


def wishlist_count(entries: Iterable[WishlistEntry]) -> int:
    return sum(1 for _ in entries)


def catalog_stats(items: Iterable[CatalogItem]) -> dict[str, int]:
    """Count items per moderation status.

    ``active`` counts approved items, matching the vendor dashboard.
    """
    counts: Counter = Counter(item.status for item in items)
    return {
        "total": sum(counts.values()),
        "active": counts[ModerationStatus.APPROVED],
        "pending": counts[ModerationStatus.PENDING],
        "draft": counts[ModerationStatus.DRAFT],
        "rejected": counts[ModerationStatus.REJECTED],
    }


def items_by_status(items: Iterable[CatalogItem], status: ModerationStatus) -> list[CatalogItem]:
    return [item for item in items if item.status == status]
