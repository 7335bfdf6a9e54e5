"""Tests for the cart and wishlist CLI commands (local-only profile)."""

from __future__ import annotations

import json


def _add(invoke_json, product_id: str = "p1", size: str = "M", quantity: int = 1, price: str = "12.5"):
    return invoke_json(
        "cart", "add", product_id, "--name", "Tee", "--price", price, "--size", size, "--quantity", str(quantity)
    )


class TestCart:
    def test_empty(self, invoke, invoke_json):
        assert "Cart is empty." in invoke("cart", "list").output
        parsed, code = invoke_json("cart", "list")
        assert code == 0
        assert parsed["data"] == {"items": [], "item_count": 0, "total": 0}

    def test_add_merges_lines(self, invoke_json):
        _add(invoke_json, quantity=1)
        parsed, code = _add(invoke_json, quantity=2)

        assert code == 0
        data = parsed["data"]
        assert len(data["items"]) == 1
        assert data["item_count"] == 3
        assert data["total"] == 37.5

    def test_add_persists_between_invocations(self, invoke_json, store_root):
        _add(invoke_json, "p1")
        _add(invoke_json, "p2", size="L")

        parsed, _ = invoke_json("cart", "list")

        assert [i["product"]["id"] for i in parsed["data"]["items"]] == ["p2", "p1"]
        cached = json.loads((store_root / ".storefront" / "cache" / "cart.json").read_text())
        assert len(cached) == 2

    def test_human_output(self, invoke):
        result = invoke("cart", "add", "p1", "--name", "Tee", "--price", "10", "--size", "M", "--quantity", "2")
        assert result.exit_code == 0
        assert "Added 2 x Tee (M)." in result.output
        assert "2 item(s), total $20.00" in result.output

    def test_bad_quantity(self, invoke_json):
        parsed, code = _add(invoke_json, quantity=0)
        assert code == 1
        assert parsed["ok"] is False
        assert parsed["error"]["code"] == "VALIDATION_ERROR"

    def test_update_and_remove(self, invoke_json):
        _add(invoke_json, "p1")
        _add(invoke_json, "p2")

        parsed, _ = invoke_json("cart", "update", "p1", "--size", "M", "--quantity", "4")
        assert parsed["data"]["item_count"] == 5

        parsed, _ = invoke_json("cart", "update", "p1", "--size", "M", "--quantity", "0")
        assert [i["product"]["id"] for i in parsed["data"]["items"]] == ["p2"]

        parsed, _ = invoke_json("cart", "remove", "p2", "--size", "M")
        assert parsed["data"]["items"] == []

    def test_clear(self, invoke, invoke_json):
        _add(invoke_json)
        result = invoke("cart", "clear")
        assert "Cart cleared." in result.output
        parsed, _ = invoke_json("cart", "list")
        assert parsed["data"]["item_count"] == 0

    def test_account_carts_share_device_cache(self, invoke_json):
        # Local-only: the device cache is the only tier, whoever is signed in.
        _add(invoke_json, "p1")
        parsed, _ = invoke_json("cart", "list", "--account", "u1")
        assert parsed["data"]["item_count"] == 1


class TestWishlist:
    def test_add_list_remove(self, invoke, invoke_json):
        parsed, code = invoke_json("wishlist", "add", "p1", "--name", "Scarf", "--price", "20")
        assert code == 0
        assert parsed["data"]["count"] == 1

        invoke_json("wishlist", "add", "p1", "--name", "Scarf", "--price", "18")
        parsed, _ = invoke_json("wishlist", "list")
        assert parsed["data"]["count"] == 1
        assert parsed["data"]["items"][0]["product"]["price"] == 18

        assert "Scarf" in invoke("wishlist", "list").output

        parsed, _ = invoke_json("wishlist", "remove", "p1")
        assert parsed["data"] == {"items": [], "count": 0}

    def test_empty_and_clear(self, invoke, invoke_json):
        assert "Wishlist is empty." in invoke("wishlist", "list").output
        invoke_json("wishlist", "add", "p1", "--name", "Scarf", "--price", "20")
        assert "Wishlist cleared." in invoke("wishlist", "clear").output
        parsed, _ = invoke_json("wishlist", "list")
        assert parsed["data"]["count"] == 0


class TestSession:
    def test_signin_keeps_device_items_local_only(self, invoke_json):
        _add(invoke_json, "p1", quantity=2)
        parsed, code = invoke_json("signin", "u1")
        assert code == 0
        assert parsed["data"]["transition"] == "sign_in"
        assert parsed["data"]["owner"]["id"] == "u1"
        assert parsed["data"]["cart_item_count"] == 2

    def test_signout_clears_device(self, invoke_json, store_root):
        _add(invoke_json, "p1")
        invoke_json("wishlist", "add", "p9", "--name", "Scarf", "--price", "20")

        parsed, code = invoke_json("signout", "--account", "u1")

        assert code == 0
        assert parsed["data"]["transition"] == "sign_out"
        assert parsed["data"]["cart_item_count"] == 0
        assert not (store_root / ".storefront" / "cache" / "cart.json").exists()
        assert not (store_root / ".storefront" / "cache" / "wishlist.json").exists()

    def test_signout_requires_account(self, invoke_json):
        parsed, code = invoke_json("signout")
        assert code == 1
        assert parsed["error"]["code"] == "VALIDATION_ERROR"
