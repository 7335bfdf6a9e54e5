"""Tracked entity shapes and the per-kind rules the sync engine applies.

Three kinds of collection are tracked: cart lines, wishlist entries and
vendor catalog items.  Each kind is described by an :class:`EntityKind`
that knows its natural key, how two entities with the same key merge, how
a patch is applied, and how the entity round-trips through the local
cache.  Remote row mapping lives in ``storefront.sync.records``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from storefront.core.errors import ValidationError
from storefront.core.events import utc_now


class ModerationStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ProductRef:
    """Denormalized product snapshot carried by cart and wishlist rows."""

    id: str
    name: str
    price: float
    image: str = ""
    category: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "image": self.image,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ProductRef:
        return cls(
            id=str(d["id"]),
            name=d.get("name", ""),
            price=float(d.get("price") or 0),
            image=d.get("image") or "",
            category=d.get("category") or "",
        )


@dataclass(frozen=True)
class CartLine:
    product: ProductRef
    size: str
    quantity: int = 1
    created_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_dict(),
            "size": self.size,
            "quantity": self.quantity,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CartLine:
        return cls(
            product=ProductRef.from_dict(d["product"]),
            size=str(d["size"]),
            quantity=int(d.get("quantity", 1)),
            created_at=d.get("created_at"),
        )


@dataclass(frozen=True)
class WishlistEntry:
    product: ProductRef
    created_at: str | None = None

    def to_dict(self) -> dict:
        return {"product": self.product.to_dict(), "created_at": self.created_at}

    @classmethod
    def from_dict(cls, d: dict) -> WishlistEntry:
        return cls(product=ProductRef.from_dict(d["product"]), created_at=d.get("created_at"))


@dataclass(frozen=True)
class CatalogItem:
    """A vendor-submitted catalog item.

    ``status`` is governed by the moderation state machine; vendors edit
    content fields only.  ``rejection_reason`` and ``approved_at`` are
    stamped by moderation transitions.
    """

    id: str
    owner_ref: str
    name: str
    price: float
    category: str
    status: ModerationStatus = ModerationStatus.DRAFT
    description: str = ""
    original_price: float | None = None
    images: tuple[str, ...] = ()
    sizes: tuple[str, ...] = ()
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None
    rejection_reason: str | None = None
    approved_at: str | None = None

    @property
    def image(self) -> str:
        """Primary image (first of ``images``), or an empty string."""
        return self.images[0] if self.images else ""

    @property
    def is_sale(self) -> bool:
        return self.original_price is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_ref": self.owner_ref,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "original_price": self.original_price,
            "category": self.category,
            "images": list(self.images),
            "sizes": list(self.sizes),
            "status": self.status.value,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "rejection_reason": self.rejection_reason,
            "approved_at": self.approved_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CatalogItem:
        original = d.get("original_price")
        return cls(
            id=str(d["id"]),
            owner_ref=str(d.get("owner_ref", "")),
            name=d.get("name", ""),
            description=d.get("description") or "",
            price=float(d.get("price") or 0),
            original_price=float(original) if original is not None else None,
            category=d.get("category") or "",
            images=tuple(d.get("images") or ()),
            sizes=tuple(d.get("sizes") or ()),
            status=ModerationStatus(d.get("status") or "draft"),
            is_active=bool(d.get("is_active", True)),
            created_at=d.get("created_at"),
            updated_at=d.get("updated_at"),
            rejection_reason=d.get("rejection_reason"),
            approved_at=d.get("approved_at"),
        )


@dataclass(frozen=True)
class Vendor:
    """A vendor account row.

    ``is_approved`` is the coarse vendor-level gate, independent of the
    per-item moderation status.
    """

    id: str
    user_id: str
    business_name: str = ""
    is_approved: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "business_name": self.business_name,
            "is_approved": self.is_approved,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Vendor:
        return cls(
            id=str(d["id"]),
            user_id=str(d.get("user_id", "")),
            business_name=d.get("business_name") or "",
            is_approved=bool(d.get("is_approved", False)),
        )


TrackedEntity = Union[CartLine, WishlistEntry, CatalogItem]
NaturalKey = tuple


# ---------------------------------------------------------------------------
# Entity kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityKind:
    """Per-kind behaviour consumed by the generic sync engine.

    Attributes:
        name: Short kind name used in logs and results.
        local_key: Local cache key holding the serialized collection.
        table: Remote table name.
        owner_column: Remote column holding the owner id.
        conflict_columns: Remote natural key columns (upsert ``on_conflict``).
        clear_on_logout: Whether sign-out wipes the local cache key.
        key_of: Natural key of an entity (without the owner component).
        merge: Combine an existing entity with an incoming one sharing its key.
        from_dict: Local cache deserializer.
        mutable_fields: Fields a patch may change.
        scoped: Whether remote reads filter on the owner column.
    """

    name: str
    local_key: str
    table: str
    owner_column: str
    conflict_columns: tuple[str, ...]
    clear_on_logout: bool
    key_of: Callable[[Any], NaturalKey]
    merge: Callable[[Any, Any], Any]
    from_dict: Callable[[dict], Any]
    mutable_fields: frozenset[str] = field(default_factory=frozenset)
    scoped: bool = True

    def to_dict(self, item: Any) -> dict:
        return item.to_dict()

    def apply_patch(self, item: Any, patch: dict) -> Any:
        """Return a copy of *item* with *patch* applied.

        Raises:
            ValidationError: If *patch* names a field outside ``mutable_fields``.
        """
        unknown = sorted(set(patch) - self.mutable_fields)
        if unknown:
            raise ValidationError(
                f"Cannot update field(s) on {self.name}: {', '.join(unknown)}",
                fields=unknown,
            )
        changes = dict(patch)
        if "product" in changes and isinstance(changes["product"], dict):
            changes["product"] = ProductRef.from_dict(changes["product"])
        for list_field in ("images", "sizes"):
            if list_field in changes:
                changes[list_field] = tuple(changes[list_field] or ())
        updated = dataclasses.replace(item, **changes)
        if isinstance(updated, CatalogItem):
            updated = dataclasses.replace(updated, updated_at=utc_now())
        return updated


def _merge_cart(existing: CartLine, incoming: CartLine) -> CartLine:
    # Quantities are additive; the product snapshot is last-writer.
    return dataclasses.replace(
        existing,
        product=incoming.product,
        quantity=existing.quantity + incoming.quantity,
    )


def _merge_wishlist(existing: WishlistEntry, incoming: WishlistEntry) -> WishlistEntry:
    return dataclasses.replace(existing, product=incoming.product)


def _merge_catalog(existing: CatalogItem, incoming: CatalogItem) -> CatalogItem:
    return dataclasses.replace(
        incoming,
        created_at=existing.created_at or incoming.created_at,
        updated_at=utc_now(),
    )


CART = EntityKind(
    name="cart",
    local_key="cart",
    table="cart_items",
    owner_column="user_id",
    conflict_columns=("user_id", "product_id", "size"),
    clear_on_logout=True,
    key_of=lambda line: (line.product.id, line.size),
    merge=_merge_cart,
    from_dict=CartLine.from_dict,
    mutable_fields=frozenset({"quantity", "product"}),
)

WISHLIST = EntityKind(
    name="wishlist",
    local_key="wishlist",
    table="wishlist_items",
    owner_column="user_id",
    conflict_columns=("user_id", "product_id"),
    clear_on_logout=True,
    key_of=lambda entry: (entry.product.id,),
    merge=_merge_wishlist,
    from_dict=WishlistEntry.from_dict,
    mutable_fields=frozenset({"product"}),
)

CATALOG = EntityKind(
    name="catalog",
    local_key="vendor-products",
    table="vendor_products",
    owner_column="vendor_id",
    conflict_columns=("id",),
    clear_on_logout=False,
    key_of=lambda item: (item.id,),
    merge=_merge_catalog,
    from_dict=CatalogItem.from_dict,
    mutable_fields=frozenset(
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
    ),
)

# Admin-wide view of every vendor's items; same table, separate cache key.
CATALOG_MODERATION = dataclasses.replace(
    CATALOG, name="catalog-moderation", local_key="catalog-moderation", scoped=False
)

KINDS: dict[str, EntityKind] = {
    kind.name: kind for kind in (CART, WISHLIST, CATALOG, CATALOG_MODERATION)
}
