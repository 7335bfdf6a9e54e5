"""CLI commands for the vendor catalog and its moderation queue.

All catalog commands work on the device-wide ``catalog-moderation``
collection, so items a vendor creates locally show up in the admin queue
of the same profile even when remote sync is off.
"""

from __future__ import annotations

import click

from storefront.cli.helpers import (
    output_error,
    output_result,
    owner_for_actor,
    require_actor_or_exit,
    require_root,
    run_with_engine,
)
from storefront.cli.main import cli
from storefront.core.entities import CATALOG_MODERATION, CatalogItem, ModerationStatus
from storefront.core.events import get_actor_display
from storefront.core.moderation import completeness_score
from storefront.core.owners import anonymous
from storefront.core.stats import catalog_stats
from storefront.storage.operations import read_moderation_events
from storefront.sync.moderation import ModerationWorkflow


def _item_data(item: CatalogItem) -> dict:
    data = item.to_dict()
    data["completeness"] = completeness_score(item)
    return data


def _format_item(item: CatalogItem) -> str:
    return (
        f"  {item.id}  {item.status.value:<9s} {completeness_score(item):>3d}%  "
        f"{item.name}  ${item.price:.2f}  [{item.owner_ref}]"
    )


def _print_items(items: list[CatalogItem], empty: str) -> str:
    if not items:
        return empty
    return "\n".join(_format_item(item) for item in items)


def _actor_option(required: bool = True):  # noqa: ANN202
    return click.option(
        "--actor",
        "actor_str",
        default=None,
        required=required,
        help="Acting identity as role:id (vendor:v1, super_admin:ops).",
    )


def _json_option(f):  # noqa: ANN001, ANN201
    return click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")(f)


def _run(store_dir, actor_str, output_json, action):  # noqa: ANN001, ANN202
    """Run *action(workflow, actor)* against the shared catalog collection."""
    actor = require_actor_or_exit(actor_str, output_json) if actor_str else None
    owner = owner_for_actor(actor) if actor is not None else anonymous()
    return run_with_engine(
        store_dir,
        CATALOG_MODERATION,
        owner,
        lambda engine: action(ModerationWorkflow(engine), actor),
        output_json,
    )


# ---------------------------------------------------------------------------
# storefront catalog ...
# ---------------------------------------------------------------------------


@cli.group()
def catalog() -> None:
    """Vendor catalog and moderation."""


@catalog.command("list")
@_actor_option(required=False)
@click.option(
    "--status",
    type=click.Choice([s.value for s in ModerationStatus]),
    default=None,
    help="Only items in this status (vendors and admins).",
)
@_json_option
def catalog_list(actor_str: str | None, status: str | None, output_json: bool) -> None:
    """List catalog items.

    Without --actor only shopper-visible items are listed.  Vendors see
    their own items; admins see everything.
    """
    store_dir = require_root(output_json)

    def action(workflow: ModerationWorkflow, actor) -> list[CatalogItem]:  # noqa: ANN001
        if actor is None or not (actor.is_vendor or actor.is_admin):
            return workflow.visible()
        items = workflow.engine.items
        if actor.is_vendor:
            items = [i for i in items if i.owner_ref == actor.vendor_id]
        if status:
            items = [i for i in items if i.status.value == status]
        return items

    items = _run(store_dir, actor_str, output_json, action)
    output_result(
        data=[_item_data(i) for i in items],
        human_message=_print_items(items, "No catalog items."),
        is_json=output_json,
    )


@catalog.command("create")
@_actor_option()
@click.option("--name", required=True, help="Item name.")
@click.option("--price", type=float, required=True, help="Price.")
@click.option("--category", required=True, help="Category.")
@click.option("--description", default="", help="Description.")
@click.option("--original-price", type=float, default=None, help="Pre-sale price.")
@click.option("--size", "sizes", multiple=True, help="Available size (repeatable).")
@click.option("--image", "images", multiple=True, help="Image URL (repeatable).")
@click.option("--submit", is_flag=True, help="Submit for review instead of saving a draft.")
@_json_option
def catalog_create(
    actor_str: str,
    name: str,
    price: float,
    category: str,
    description: str,
    original_price: float | None,
    sizes: tuple[str, ...],
    images: tuple[str, ...],
    submit: bool,
    output_json: bool,
) -> None:
    """Create a catalog item as a vendor."""
    store_dir = require_root(output_json)
    fields: dict = {
        "name": name,
        "price": price,
        "category": category,
        "description": description,
        "sizes": list(sizes),
        "images": list(images),
    }
    if original_price is not None:
        fields["original_price"] = original_price

    item = _run(
        store_dir,
        actor_str,
        output_json,
        lambda workflow, actor: workflow.create_item(actor, fields, submit=submit),
    )
    output_result(
        data=_item_data(item),
        human_message=f"Created {item.id} ({item.status.value}) \"{item.name}\"",
        is_json=output_json,
    )


@catalog.command("submit")
@click.argument("item_id")
@_actor_option()
@_json_option
def catalog_submit(item_id: str, actor_str: str, output_json: bool) -> None:
    """Submit a draft for review."""
    store_dir = require_root(output_json)
    item = _run(store_dir, actor_str, output_json, lambda wf, actor: wf.submit(actor, item_id))
    output_result(
        data=_item_data(item),
        human_message=f"Submitted {item.id} for review.",
        is_json=output_json,
    )


@catalog.command("queue")
@_json_option
def catalog_queue(output_json: bool) -> None:
    """Pending items, most complete first."""
    store_dir = require_root(output_json)
    items = _run(store_dir, None, output_json, lambda wf, _actor: wf.queue())
    output_result(
        data=[_item_data(i) for i in items],
        human_message=_print_items(items, "Review queue is empty."),
        is_json=output_json,
    )


@catalog.command("approve")
@click.argument("item_id")
@_actor_option()
@_json_option
def catalog_approve(item_id: str, actor_str: str, output_json: bool) -> None:
    """Approve a pending item."""
    store_dir = require_root(output_json)
    item = _run(store_dir, actor_str, output_json, lambda wf, actor: wf.approve(actor, item_id))
    output_result(data=_item_data(item), human_message=f"Approved {item.id}.", is_json=output_json)


@catalog.command("reject")
@click.argument("item_id")
@_actor_option()
@click.option("--reason", required=True, help="Why the item was rejected (shown to the vendor).")
@_json_option
def catalog_reject(item_id: str, actor_str: str, reason: str, output_json: bool) -> None:
    """Reject a pending item."""
    store_dir = require_root(output_json)
    item = _run(
        store_dir, actor_str, output_json, lambda wf, actor: wf.reject(actor, item_id, reason)
    )
    output_result(
        data=_item_data(item),
        human_message=f"Rejected {item.id}: {item.rejection_reason}",
        is_json=output_json,
    )


@catalog.command("bulk-approve")
@click.argument("item_ids", nargs=-1, required=True)
@_actor_option()
@_json_option
def catalog_bulk_approve(item_ids: tuple[str, ...], actor_str: str, output_json: bool) -> None:
    """Approve several pending items; failures do not undo earlier approvals."""
    store_dir = require_root(output_json)
    result = _run(
        store_dir, actor_str, output_json, lambda wf, actor: wf.bulk_approve(actor, item_ids)
    )
    lines = [f"Approved {result.success_count} of {len(item_ids)} item(s)."]
    for item_id, error in result.failed.items():
        lines.append(f"  {item_id}: {error}")
    output_result(data=result.to_dict(), human_message="\n".join(lines), is_json=output_json)


@catalog.command("stats")
@_actor_option(required=False)
@_json_option
def catalog_stats_cmd(actor_str: str | None, output_json: bool) -> None:
    """Count items per moderation status."""
    store_dir = require_root(output_json)

    def action(workflow: ModerationWorkflow, actor):  # noqa: ANN001, ANN202
        if actor is not None and actor.is_vendor:
            return catalog_stats(i for i in workflow.engine.items if i.owner_ref == actor.vendor_id)
        return workflow.stats()

    stats = _run(store_dir, actor_str, output_json, action)
    human = "\n".join(f"  {name:<10s} {count:>4d}" for name, count in stats.items())
    output_result(data=stats, human_message=human, is_json=output_json)


@catalog.command("history")
@click.argument("item_id", required=False)
@_json_option
def catalog_history(item_id: str | None, output_json: bool) -> None:
    """Show logged moderation events, optionally for one item."""
    store_dir = require_root(output_json)
    events = read_moderation_events(store_dir, item_id)
    if item_id and not events:
        output_error(f"No moderation history for {item_id}.", "NOT_FOUND", output_json)

    lines = []
    for event in events:
        who = get_actor_display(event.get("actor", "?"))
        line = f"  {event['ts']}  {event['type']:<24s} {event['item_id']}  {who}"
        reason = (event.get("provenance") or {}).get("reason")
        if reason:
            line += f"  ({reason})"
        lines.append(line)
    output_result(
        data=events,
        human_message="\n".join(lines) or "No moderation events.",
        is_json=output_json,
    )


@catalog.command("vendor")
@click.argument("vendor_id")
@click.option("--approve/--reject", "approved", required=True, help="Approve or reject the vendor.")
@click.option("--reason", default=None, help="Reason (required when rejecting).")
@_actor_option()
@_json_option
def catalog_vendor(
    vendor_id: str,
    approved: bool,
    reason: str | None,
    actor_str: str,
    output_json: bool,
) -> None:
    """Approve or reject a vendor account."""
    store_dir = require_root(output_json)
    vendor = _run(
        store_dir,
        actor_str,
        output_json,
        lambda wf, actor: wf.set_vendor_approval(actor, vendor_id, approved, reason),
    )
    state = "approved" if vendor.is_approved else "rejected"
    output_result(data=vendor.to_dict(), human_message=f"Vendor {vendor_id} {state}.", is_json=output_json)
