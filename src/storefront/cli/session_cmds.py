"""CLI commands for identity transitions: signin, signout."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from storefront.cli.helpers import (
    common_options,
    load_project_config,
    output_error,
    output_result,
    require_root,
)
from storefront.cli.main import cli
from storefront.core.config import validate_guest_data_policy
from storefront.core.entities import CART, WISHLIST
from storefront.core.owners import Owner, account, anonymous
from storefront.core.stats import cart_item_count, wishlist_count
from storefront.storage.local_cache import LocalCache
from storefront.sync.config import get_fallback_mode
from storefront.sync.engine import SyncEngine
from storefront.sync.identity import IdentityTransitionHandler, Transition
from storefront.sync.remote import RemoteStore


def _run_transition(store_dir: Path, start: Owner, target: Owner, is_json: bool) -> tuple[Transition, dict]:
    """Move the cart and wishlist from *start* to *target* and summarize them."""
    config = load_project_config(store_dir)
    policy = config.get("guest_data_policy", "replace")
    if not validate_guest_data_policy(policy):
        output_error(f"Invalid guest_data_policy in config.json: '{policy}'", "VALIDATION_ERROR", is_json)
    mode = get_fallback_mode(config)

    async def _main() -> tuple[Transition, dict]:
        remote = RemoteStore.from_fallback(mode)
        try:
            cache = LocalCache(store_dir)
            cart, wishlist = (
                SyncEngine(kind, start, cache=cache, remote=remote, fallback=mode) for kind in (CART, WISHLIST)
            )
            handler = IdentityTransitionHandler(
                [cart, wishlist], fallback=mode, guest_policy=policy, remote=remote
            )
            transition = await handler.on_auth_state_change(target)
            await cart.drain()
            await wishlist.drain()
            summary = {
                "transition": transition.value,
                "owner": handler.current.to_dict() if handler.current else None,
                "cart_item_count": cart_item_count(cart.items),
                "wishlist_count": wishlist_count(wishlist.items),
            }
            return transition, summary
        finally:
            if remote is not None:
                await remote.aclose()

    return asyncio.run(_main())


@cli.command()
@click.argument("account_id")
@click.option("--token", default=None, envvar="STOREFRONT_TOKEN", help="Access token for remote requests.")
@click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")
def signin(account_id: str, token: str | None, output_json: bool) -> None:
    """Sign this device in as ACCOUNT_ID.

    Guest cart and wishlist items are dropped or merged into the account
    according to ``guest_data_policy`` in config.json.
    """
    store_dir = require_root(output_json)
    device = anonymous(load_project_config(store_dir).get("device_id"))
    _, summary = _run_transition(store_dir, device, account(account_id, access_token=token), output_json)
    output_result(
        data=summary,
        human_message=(
            f"Signed in as {account_id} "
            f"(cart: {summary['cart_item_count']} item(s), wishlist: {summary['wishlist_count']} saved)."
        ),
        is_json=output_json,
    )


@cli.command()
@common_options
def signout(output_json: bool, account_id: str | None) -> None:
    """Sign the --account out; cart and wishlist are cleared on this device."""
    store_dir = require_root(output_json)
    if not account_id:
        output_error("--account is required to sign out.", "VALIDATION_ERROR", output_json)
    device = anonymous(load_project_config(store_dir).get("device_id"))
    _, summary = _run_transition(store_dir, account(account_id), device, output_json)
    output_result(
        data=summary,
        human_message=f"Signed out {account_id}; cart and wishlist cleared on this device.",
        is_json=output_json,
    )
