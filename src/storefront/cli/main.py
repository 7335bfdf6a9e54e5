"""CLI entry point and commands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from storefront.core.config import (
    VALID_GUEST_DATA_POLICIES,
    default_config,
    is_placeholder,
    serialize_config,
)
from storefront.storage.fs import STOREFRONT_DIR, atomic_write, ensure_store_dirs


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log sync activity (INFO).")
def cli(verbose: bool) -> None:
    """Storefront: local-first cart, wishlist and catalog sync."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


@cli.command()
@click.option(
    "--path",
    "target_path",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Directory to initialize the profile in (defaults to current directory).",
)
@click.option("--remote-url", default=None, help="Remote store URL (omit for local-only).")
@click.option("--remote-key", default=None, help="Remote store API key.")
@click.option(
    "--guest-policy",
    type=click.Choice(VALID_GUEST_DATA_POLICIES),
    default="replace",
    show_default=True,
    help="What happens to guest items on sign-in.",
)
def init(
    target_path: str,
    remote_url: str | None,
    remote_key: str | None,
    guest_policy: str,
) -> None:
    """Initialize a new storefront profile."""
    root = Path(target_path)
    store_dir = root / STOREFRONT_DIR

    # Idempotency: if .storefront/ already exists as a directory, skip
    if store_dir.is_dir():
        click.echo(f"Storefront already initialized in {STOREFRONT_DIR}/")
        return

    if store_dir.exists():
        raise click.ClickException(
            f"Cannot initialize: '{STOREFRONT_DIR}' exists but is not a directory. "
            "Remove it and try again."
        )

    try:
        ensure_store_dirs(root)

        config: dict = dict(default_config())
        config["guest_data_policy"] = guest_policy
        if remote_url:
            config["remote"]["url"] = remote_url
        if remote_key:
            config["remote"]["key"] = remote_key
        atomic_write(store_dir / "config.json", serialize_config(config))
    except PermissionError:
        raise click.ClickException(f"Permission denied: cannot create {STOREFRONT_DIR}/ in {root}")
    except OSError as e:
        raise click.ClickException(f"Failed to initialize storefront: {e}")

    click.echo(f"Storefront initialized in {STOREFRONT_DIR}/")
    click.echo(f"Device: {config['device_id']}")
    if is_placeholder(remote_url) or is_placeholder(remote_key):
        click.echo("Remote sync not configured; running local-only.")


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")
def mode(output_json: bool) -> None:
    """Show whether remote sync is enabled for this profile."""
    from storefront.cli.helpers import load_project_config, output_result, require_root
    from storefront.sync.config import get_fallback_mode

    store_dir = require_root(output_json)
    fallback = get_fallback_mode(load_project_config(store_dir))
    info = fallback.describe()

    if fallback.local_only:
        human = f"local-only ({info['reason']})"
    else:
        human = f"remote: {info['url']} (timeout {info['timeout_seconds']}s)"
    output_result(data=info, human_message=human, is_json=output_json)


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------

from storefront.cli import collection_cmds as _collection_cmds  # noqa: E402, F401
from storefront.cli import catalog_cmds as _catalog_cmds  # noqa: E402, F401
from storefront.cli import session_cmds as _session_cmds  # noqa: E402, F401

if __name__ == "__main__":
    cli()
