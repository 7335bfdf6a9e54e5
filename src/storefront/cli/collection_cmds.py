"""CLI commands for the shopper collections (cart, wishlist)."""

from __future__ import annotations

import click

from storefront.cli.helpers import (
    common_options,
    output_result,
    require_root,
    resolve_owner,
    run_with_engine,
)
from storefront.cli.main import cli
from storefront.core.entities import CART, WISHLIST, CartLine, ProductRef, WishlistEntry
from storefront.core.stats import cart_item_count, cart_total, wishlist_count


def _product_options(f):  # noqa: ANN001, ANN201
    """Options describing the product snapshot stored with a line."""
    f = click.option("--category", default="", help="Product category.")(f)
    f = click.option("--image", default="", help="Product image URL.")(f)
    f = click.option("--price", type=float, required=True, help="Unit price.")(f)
    f = click.option("--name", required=True, help="Product name.")(f)
    return f


def _cart_data(lines: list) -> dict:
    return {
        "items": [line.to_dict() for line in lines],
        "item_count": cart_item_count(lines),
        "total": cart_total(lines),
    }


def _format_line(line: CartLine) -> str:
    subtotal = round(line.product.price * line.quantity, 2)
    return f"  {line.product.id:<16s} {line.size:<6s} x{line.quantity:<3d} {line.product.name}  ${subtotal:.2f}"


def _print_cart(lines: list) -> str:
    if not lines:
        return "Cart is empty."
    out = [_format_line(line) for line in lines]
    out.append(f"{cart_item_count(lines)} item(s), total ${cart_total(lines):.2f}")
    return "\n".join(out)


# ---------------------------------------------------------------------------
# storefront cart ...
# ---------------------------------------------------------------------------


@cli.group()
def cart() -> None:
    """Shopping cart (product + size lines)."""


@cart.command("list")
@common_options
def cart_list(output_json: bool, account_id: str | None) -> None:
    """Show the cart with item count and total."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    lines = run_with_engine(store_dir, CART, owner, lambda engine: engine.items, output_json)
    output_result(data=_cart_data(lines), human_message=_print_cart(lines), is_json=output_json)


@cart.command("add")
@click.argument("product_id")
@_product_options
@click.option("--size", required=True, help="Size / variant.")
@click.option("--quantity", type=int, default=1, show_default=True, help="Units to add.")
@common_options
def cart_add(
    product_id: str,
    name: str,
    price: float,
    image: str,
    category: str,
    size: str,
    quantity: int,
    output_json: bool,
    account_id: str | None,
) -> None:
    """Add units of a product; an existing line gains the quantity."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    product = ProductRef(id=product_id, name=name, price=price, image=image, category=category)
    line = CartLine(product=product, size=size, quantity=quantity)

    lines = run_with_engine(store_dir, CART, owner, lambda engine: engine.add(line), output_json)
    output_result(
        data=_cart_data(lines),
        human_message=f"Added {quantity} x {name} ({size}).\n{_print_cart(lines)}",
        is_json=output_json,
    )


@cart.command("remove")
@click.argument("product_id")
@click.option("--size", required=True, help="Size / variant.")
@common_options
def cart_remove(product_id: str, size: str, output_json: bool, account_id: str | None) -> None:
    """Remove a product line."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    lines = run_with_engine(
        store_dir, CART, owner, lambda engine: engine.remove((product_id, size)), output_json
    )
    output_result(
        data=_cart_data(lines),
        human_message=f"Removed {product_id} ({size}).\n{_print_cart(lines)}",
        is_json=output_json,
    )


@cart.command("update")
@click.argument("product_id")
@click.option("--size", required=True, help="Size / variant.")
@click.option("--quantity", type=int, required=True, help="New quantity (0 removes the line).")
@common_options
def cart_update(
    product_id: str,
    size: str,
    quantity: int,
    output_json: bool,
    account_id: str | None,
) -> None:
    """Set the quantity of a product line."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    lines = run_with_engine(
        store_dir,
        CART,
        owner,
        lambda engine: engine.update((product_id, size), {"quantity": quantity}),
        output_json,
    )
    output_result(data=_cart_data(lines), human_message=_print_cart(lines), is_json=output_json)


@cart.command("clear")
@common_options
def cart_clear(output_json: bool, account_id: str | None) -> None:
    """Remove every line from the cart."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    lines = run_with_engine(store_dir, CART, owner, lambda engine: engine.clear(), output_json)
    output_result(data=_cart_data(lines), human_message="Cart cleared.", is_json=output_json)


# ---------------------------------------------------------------------------
# storefront wishlist ...
# ---------------------------------------------------------------------------


def _wishlist_data(entries: list) -> dict:
    return {"items": [e.to_dict() for e in entries], "count": wishlist_count(entries)}


def _print_wishlist(entries: list) -> str:
    if not entries:
        return "Wishlist is empty."
    out = [f"  {e.product.id:<16s} {e.product.name}  ${e.product.price:.2f}" for e in entries]
    out.append(f"{wishlist_count(entries)} saved item(s)")
    return "\n".join(out)


@cli.group()
def wishlist() -> None:
    """Saved products."""


@wishlist.command("list")
@common_options
def wishlist_list(output_json: bool, account_id: str | None) -> None:
    """Show saved products."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    entries = run_with_engine(store_dir, WISHLIST, owner, lambda engine: engine.items, output_json)
    output_result(data=_wishlist_data(entries), human_message=_print_wishlist(entries), is_json=output_json)


@wishlist.command("add")
@click.argument("product_id")
@_product_options
@common_options
def wishlist_add(
    product_id: str,
    name: str,
    price: float,
    image: str,
    category: str,
    output_json: bool,
    account_id: str | None,
) -> None:
    """Save a product."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    product = ProductRef(id=product_id, name=name, price=price, image=image, category=category)
    entries = run_with_engine(
        store_dir, WISHLIST, owner, lambda engine: engine.add(WishlistEntry(product)), output_json
    )
    output_result(
        data=_wishlist_data(entries),
        human_message=f"Saved {name}.\n{_print_wishlist(entries)}",
        is_json=output_json,
    )


@wishlist.command("remove")
@click.argument("product_id")
@common_options
def wishlist_remove(product_id: str, output_json: bool, account_id: str | None) -> None:
    """Remove a saved product."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    entries = run_with_engine(
        store_dir, WISHLIST, owner, lambda engine: engine.remove((product_id,)), output_json
    )
    output_result(
        data=_wishlist_data(entries),
        human_message=f"Removed {product_id}.\n{_print_wishlist(entries)}",
        is_json=output_json,
    )


@wishlist.command("clear")
@common_options
def wishlist_clear(output_json: bool, account_id: str | None) -> None:
    """Remove every saved product."""
    store_dir = require_root(output_json)
    owner = resolve_owner(store_dir, account_id)
    entries = run_with_engine(store_dir, WISHLIST, owner, lambda engine: engine.clear(), output_json)
    output_result(data=_wishlist_data(entries), human_message="Wishlist cleared.", is_json=output_json)
