"""Tests for sync.records: entity to remote row mapping."""

from __future__ import annotations

import pytest

from conftest import make_item, make_product
from storefront.core.entities import (
    CART,
    CATALOG,
    CATALOG_MODERATION,
    WISHLIST,
    CartLine,
    CatalogItem,
    ModerationStatus,
    WishlistEntry,
)
from storefront.sync.records import from_remote, key_filter, to_remote


class TestCart:
    def test_to_remote_flattens_product(self):
        line = CartLine(make_product("p1", price=12.0), "M", 3, created_at="2024-01-01T00:00:00.000000Z")
        row = to_remote(CART, line, "u1")
        assert row == {
            "user_id": "u1",
            "product_id": "p1",
            "size": "M",
            "quantity": 3,
            "product_name": "Product p1",
            "product_price": 12.0,
            "product_image": "",
            "product_category": "tops",
            "created_at": "2024-01-01T00:00:00.000000Z",
        }

    def test_created_at_omitted_when_unset(self):
        assert "created_at" not in to_remote(CART, CartLine(make_product(), "M"), "u1")

    def test_from_remote_defaults(self):
        line = from_remote(CART, {"product_id": 7, "size": "L"})
        assert line.product.id == "7"
        assert line.product.price == 0.0
        assert line.quantity == 1

    def test_from_remote_keeps_stored_quantity(self):
        assert from_remote(CART, {"product_id": "p1", "size": "L", "quantity": 0}).quantity == 0
        assert from_remote(CART, {"product_id": "p1", "size": "L", "quantity": "4"}).quantity == 4

    def test_to_remote_rejects_wrong_entity(self):
        with pytest.raises(TypeError):
            to_remote(CART, WishlistEntry(make_product()), "u1")

    def test_missing_key_column(self):
        with pytest.raises(KeyError):
            from_remote(CART, {"size": "L"})


class TestWishlist:
    def test_round_trip_shape(self):
        entry = WishlistEntry(make_product("p2"))
        row = to_remote(WISHLIST, entry, "u1")
        assert row["user_id"] == "u1"
        assert "size" not in row
        assert from_remote(WISHLIST, row).product == entry.product


class TestCatalog:
    def test_column_names(self):
        item = make_item(
            status=ModerationStatus.REJECTED,
            rejection_reason="Blurry",
            approved_at=None,
            updated_at="2024-01-02T00:00:00.000000Z",
        )
        row = to_remote(CATALOG, item, "ignored")
        assert row["vendor_id"] == "v1"
        assert row["status"] == "rejected"
        assert row["rejected_reason"] == "Blurry"
        assert row["approval_date"] is None
        assert row["images"] == ["https://img.test/shirt.jpg"]
        assert row["updated_at"] == "2024-01-02T00:00:00.000000Z"

    def test_owner_fallback_when_unset(self):
        assert to_remote(CATALOG, make_item(owner_ref=""), "v9")["vendor_id"] == "v9"

    def test_from_remote(self):
        item = from_remote(
            CATALOG_MODERATION,
            {
                "id": "item_1",
                "vendor_id": "v1",
                "name": "Tee",
                "price": "15",
                "sizes": ["M"],
                "approval_date": "2024-01-03T00:00:00.000000Z",
            },
        )
        assert item.owner_ref == "v1"
        assert item.price == 15.0
        assert item.status is ModerationStatus.DRAFT
        assert item.status is CatalogItem.from_dict({"id": "item_1"}).status
        assert item.sizes == ("M",)
        assert item.approved_at == "2024-01-03T00:00:00.000000Z"


class TestKeyFilter:
    def test_excludes_owner_column(self):
        assert key_filter(CART, ("p1", "M")) == {"product_id": "p1", "size": "M"}
        assert key_filter(WISHLIST, ("p1",)) == {"product_id": "p1"}
        assert key_filter(CATALOG, ("item_1",)) == {"id": "item_1"}

    def test_arity_mismatch(self):
        with pytest.raises(ValueError):
            key_filter(CART, ("p1",))
