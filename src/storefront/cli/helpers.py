"""Shared CLI helpers, decorators, and output utilities."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn, TypeVar

import click

from storefront.core.actors import Actor, parse_actor
from storefront.core.entities import EntityKind
from storefront.core.errors import StorefrontError
from storefront.core.owners import Owner, account, anonymous
from storefront.storage.fs import STOREFRONT_DIR, StorefrontRootError, find_root
from storefront.storage.local_cache import LocalCache
from storefront.sync.config import get_fallback_mode
from storefront.sync.engine import SyncEngine
from storefront.sync.identity import resolve_vendor_owner
from storefront.sync.remote import RemoteStore

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Root & config
# ---------------------------------------------------------------------------


def require_root(is_json: bool = False) -> Path:
    """Find .storefront/ directory or exit with error."""
    try:
        root = find_root()
    except StorefrontRootError as e:
        output_error(str(e), "NOT_INITIALIZED", is_json)
    if root is None:
        output_error(
            "Not a storefront profile (no .storefront/ found). Run 'storefront init' first.",
            "NOT_INITIALIZED",
            is_json,
        )
    return root / STOREFRONT_DIR


def load_project_config(store_dir: Path) -> dict:
    """Load and return config.json from the storefront directory."""
    config_path = store_dir / "config.json"
    if not config_path.exists():
        return {}
    return json.loads(config_path.read_text())


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(*, data: object, human_message: str, is_json: bool) -> None:
    """Print success result in the appropriate format."""
    if is_json:
        click.echo(json_envelope(True, data=data))
    else:
        click.echo(human_message)


# ---------------------------------------------------------------------------
# Identity resolution
# ---------------------------------------------------------------------------


def resolve_owner(store_dir: Path, account_id: str | None) -> Owner:
    """Return the account owner for ``--account``, or this device's guest owner."""
    if account_id:
        return account(account_id)
    config = load_project_config(store_dir)
    return anonymous(config.get("device_id"))


def require_actor_or_exit(actor_str: str | None, is_json: bool) -> Actor:
    """Parse ``--actor role:id`` or exit with a validation error."""
    if not actor_str:
        output_error("--actor is required (e.g. vendor:v1, super_admin:ops).", "VALIDATION_ERROR", is_json)
    try:
        return parse_actor(actor_str)
    except ValueError as e:
        output_error(str(e), "VALIDATION_ERROR", is_json)


def owner_for_actor(actor: Actor) -> Owner:
    """Acting identity as a collection owner (vendors carry their vendor id)."""
    return account(actor.id, vendor_id=actor.vendor_id)


# ---------------------------------------------------------------------------
# Engine runner
# ---------------------------------------------------------------------------


def run_with_engine(
    store_dir: Path,
    kind: EntityKind,
    owner: Owner,
    action: Callable[[SyncEngine], T],
    is_json: bool,
    *,
    load: bool = True,
) -> T:
    """Build an engine for *owner*, run *action* on it and flush remote writes.

    The whole command is one event loop: the collection is loaded, the
    synchronous *action* mutates it, and pending remote writes are drained
    before the loop closes.  ``StorefrontError`` from *action* exits with
    its error code.
    """
    config = load_project_config(store_dir)
    mode = get_fallback_mode(config)

    async def _main() -> T:
        remote = RemoteStore.from_fallback(mode)
        try:
            resolved = owner
            if kind.owner_column == "vendor_id":
                resolved = await resolve_vendor_owner(remote, owner, mode)
            engine = SyncEngine(kind, resolved, cache=LocalCache(store_dir), remote=remote, fallback=mode)
            if load:
                await engine.load()
            result = action(engine)
            await engine.drain()
            return result
        finally:
            if remote is not None:
                await remote.aclose()

    try:
        return asyncio.run(_main())
    except StorefrontError as e:
        output_error(str(e), e.code, is_json)


# ---------------------------------------------------------------------------
# Click decorator
# ---------------------------------------------------------------------------


def common_options(f):  # noqa: ANN001, ANN201
    """Decorator adding ``--json`` and ``--account`` to a command."""
    f = click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")(f)
    f = click.option(
        "--account",
        "account_id",
        default=None,
        envvar="STOREFRONT_ACCOUNT",
        help="Signed-in account id (guest when omitted).",
    )(f)
    return f
