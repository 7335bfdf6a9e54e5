"""Map tracked entities to/from remote rows.

Remote tables use snake_case columns with the product snapshot flattened
into ``product_*`` columns; entities nest it in a :class:`ProductRef`.
Both directions are pure and total per kind: a row missing optional
columns maps with defaults, and only a missing natural-key column is an
error (``KeyError``).
"""

from __future__ import annotations

from storefront.core.entities import (
    CartLine,
    CatalogItem,
    EntityKind,
    ModerationStatus,
    NaturalKey,
    ProductRef,
    TrackedEntity,
    WishlistEntry,
)


def to_remote(kind: EntityKind, item: TrackedEntity, owner_id: str | None) -> dict:
    """Build the remote row for *item* owned by *owner_id*.

    Catalog rows take the vendor id from ``item.owner_ref`` when set, so
    an admin writing a status change never re-homes the item.
    """
    if kind.table == "cart_items":
        _expect(item, CartLine)
        row = {
            "user_id": owner_id,
            "product_id": item.product.id,
            "size": item.size,
            "quantity": item.quantity,
            **_product_columns(item.product),
        }
    elif kind.table == "wishlist_items":
        _expect(item, WishlistEntry)
        row = {
            "user_id": owner_id,
            "product_id": item.product.id,
            **_product_columns(item.product),
        }
    elif kind.table == "vendor_products":
        _expect(item, CatalogItem)
        row = {
            "id": item.id,
            "vendor_id": item.owner_ref or owner_id,
            "name": item.name,
            "description": item.description,
            "price": item.price,
            "original_price": item.original_price,
            "category": item.category,
            "images": list(item.images),
            "sizes": list(item.sizes),
            "status": item.status.value,
            "is_active": item.is_active,
            "rejected_reason": item.rejection_reason,
            "approval_date": item.approved_at,
        }
        if item.updated_at is not None:
            row["updated_at"] = item.updated_at
    else:
        raise ValueError(f"No remote mapping for table '{kind.table}'")

    if item.created_at is not None:
        row["created_at"] = item.created_at
    return row


def from_remote(kind: EntityKind, row: dict) -> TrackedEntity:
    """Build an entity from a remote row of *kind*'s table."""
    if kind.table == "cart_items":
        return CartLine(
            product=_product_from_row(row),
            size=str(row["size"]),
            quantity=int(row["quantity"]) if row.get("quantity") is not None else 1,
            created_at=row.get("created_at"),
        )
    if kind.table == "wishlist_items":
        return WishlistEntry(product=_product_from_row(row), created_at=row.get("created_at"))
    if kind.table == "vendor_products":
        original = row.get("original_price")
        return CatalogItem(
            id=str(row["id"]),
            owner_ref=str(row.get("vendor_id") or ""),
            name=row.get("name") or "",
            description=row.get("description") or "",
            price=float(row.get("price") or 0),
            original_price=float(original) if original is not None else None,
            category=row.get("category") or "",
            images=tuple(row.get("images") or ()),
            sizes=tuple(row.get("sizes") or ()),
            status=ModerationStatus(row.get("status") or "draft"),
            is_active=bool(row.get("is_active", True)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            rejection_reason=row.get("rejected_reason"),
            approved_at=row.get("approval_date"),
        )
    raise ValueError(f"No remote mapping for table '{kind.table}'")


def key_filter(kind: EntityKind, key: NaturalKey) -> dict[str, str]:
    """Return the non-owner natural key columns for *key*."""
    columns = [c for c in kind.conflict_columns if c != kind.owner_column]
    if len(columns) != len(key):
        raise ValueError(f"Key {key!r} does not match {kind.name} columns {columns}")
    return {column: str(value) for column, value in zip(columns, key)}


def _expect(item: TrackedEntity, cls: type) -> None:
    if not isinstance(item, cls):
        raise TypeError(f"Expected {cls.__name__} for this table, got {type(item).__name__}")


def _product_columns(product: ProductRef) -> dict:
    return {
        "product_name": product.name,
        "product_price": product.price,
        "product_image": product.image,
        "product_category": product.category,
    }


def _product_from_row(row: dict) -> ProductRef:
    return ProductRef(
        id=str(row["product_id"]),
        name=row.get("product_name") or "",
        price=float(row.get("product_price") or 0),
        image=row.get("product_image") or "",
        category=row.get("product_category") or "",
    )
