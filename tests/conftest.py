"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from storefront.core.entities import CatalogItem, ModerationStatus, ProductRef, Vendor
from storefront.core.errors import RemoteUnavailable
from storefront.sync.records import from_remote, key_filter


@pytest.fixture(autouse=True)
def _isolate_fallback(monkeypatch: pytest.MonkeyPatch):
    """Every test starts with no cached fallback decision and no remote env."""
    from storefront.sync.config import REMOTE_KEY_ENV, REMOTE_URL_ENV, reset_fallback_mode

    monkeypatch.delenv(REMOTE_URL_ENV, raising=False)
    monkeypatch.delenv(REMOTE_KEY_ENV, raising=False)
    monkeypatch.delenv("STOREFRONT_ACCOUNT", raising=False)
    reset_fallback_mode()
    yield
    reset_fallback_mode()


@pytest.fixture()
def store_root(tmp_path: Path) -> Path:
    """Return a temporary directory with .storefront/ already initialized."""
    from storefront.core.config import default_config, serialize_config
    from storefront.storage.fs import STOREFRONT_DIR, atomic_write, ensure_store_dirs

    ensure_store_dirs(tmp_path)
    atomic_write(tmp_path / STOREFRONT_DIR / "config.json", serialize_config(default_config()))
    return tmp_path


@pytest.fixture()
def store_dir(store_root: Path) -> Path:
    from storefront.storage.fs import STOREFRONT_DIR

    return store_root / STOREFRONT_DIR


@pytest.fixture()
def cache(store_dir: Path):
    from storefront.storage.local_cache import LocalCache

    return LocalCache(store_dir)


@pytest.fixture()
def local_mode():
    from storefront.sync.config import FallbackMode

    return FallbackMode.local("test")


@pytest.fixture()
def remote_mode():
    from storefront.sync.config import FallbackMode

    return FallbackMode.remote("https://db.test", "test-key")


# ---------------------------------------------------------------------------
# Entity factories
# ---------------------------------------------------------------------------


def make_product(product_id: str = "p1", price: float = 10.0, name: str | None = None) -> ProductRef:
    return ProductRef(id=product_id, name=name or f"Product {product_id}", price=price, image="", category="tops")


def make_item(
    item_id: str = "item_1",
    *,
    owner_ref: str = "v1",
    status: ModerationStatus = ModerationStatus.PENDING,
    is_active: bool = True,
    **overrides,
) -> CatalogItem:
    fields = {
        "name": "Linen Shirt",
        "price": 49.0,
        "category": "shirts",
        "description": "A breathable linen shirt with a relaxed fit, cut for warm summer days.",
        "sizes": ("S", "M"),
        "images": ("https://img.test/shirt.jpg",),
        "created_at": "2024-01-01T00:00:00.000000Z",
    }
    fields.update(overrides)
    return CatalogItem(id=item_id, owner_ref=owner_ref, status=status, is_active=is_active, **fields)


# ---------------------------------------------------------------------------
# In-memory remote store
# ---------------------------------------------------------------------------


class FakeRemote:
    """In-memory stand-in for ``RemoteStore`` with the same async surface.

    Set ``fail`` to make every call raise ``RemoteUnavailable``.  ``calls``
    records ``(op, kind_or_table)`` for each attempt.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.vendors: dict[str, Vendor] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail = False

    def _attempt(self, op: str, target: str) -> None:
        self.calls.append((op, target))
        if self.fail:
            raise RemoteUnavailable(f"{op} {target}: connection refused")

    def rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    def seed(self, table: str, *rows: dict) -> None:
        self.rows(table).extend(rows)

    async def fetch_all(self, kind, owner_id, *, token=None):
        self._attempt("fetch_all", kind.table)
        rows = [r for r in self.rows(kind.table) if owner_id is None or r.get(kind.owner_column) == owner_id]
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return [from_remote(kind, r) for r in rows]

    async def upsert(self, kind, record, conflict_key, *, token=None):
        self._attempt("upsert", kind.table)
        rows = self.rows(kind.table)
        match = tuple(record.get(c) for c in conflict_key)
        for i, row in enumerate(rows):
            if tuple(row.get(c) for c in conflict_key) == match:
                rows[i] = {**row, **record}
                return
        rows.append(dict(record))

    async def delete(self, kind, owner_id, natural_key, *, token=None):
        self._attempt("delete", kind.table)
        filters = key_filter(kind, natural_key)
        if owner_id is not None:
            filters[kind.owner_column] = owner_id
        self.tables[kind.table] = [
            r for r in self.rows(kind.table) if not all(str(r.get(c)) == v for c, v in filters.items())
        ]

    async def delete_all(self, kind, owner_id, *, token=None):
        self._attempt("delete_all", kind.table)
        self.tables[kind.table] = [r for r in self.rows(kind.table) if r.get(kind.owner_column) != owner_id]

    async def fetch_vendor(self, user_id, *, token=None):
        self._attempt("fetch_vendor", "vendors")
        return next((v for v in self.vendors.values() if v.user_id == user_id), None)

    async def set_vendor_approval(self, vendor_id, approved, *, token=None):
        self._attempt("set_vendor_approval", "vendors")
        vendor = self.vendors.get(vendor_id) or Vendor(id=vendor_id, user_id="")
        self.vendors[vendor_id] = Vendor(vendor.id, vendor.user_id, vendor.business_name, approved)

    async def aclose(self):
        pass


@pytest.fixture()
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def make_engine(cache, remote_mode, fake_remote):
    """Factory fixture: build a ``SyncEngine`` wired to the fake remote.

    Usage::

        engine = make_engine(CART, account("u1"))
        engine = make_engine(CART, anonymous(), fallback=local_mode)
    """
    from storefront.sync.engine import SyncEngine

    def _make(kind, owner, *, fallback=None, remote=fake_remote):
        return SyncEngine(
            kind,
            owner,
            cache=cache,
            remote=remote,
            fallback=fallback if fallback is not None else remote_mode,
        )

    return _make


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def cli_env(store_root: Path) -> dict[str, str]:
    """Return env dict with STOREFRONT_ROOT pointing to store_root."""
    return {"STOREFRONT_ROOT": str(store_root)}


@pytest.fixture()
def invoke(cli_runner: CliRunner, cli_env: dict[str, str]):
    """Return a helper that invokes CLI commands with the right environment.

    Usage::

        result = invoke("cart", "add", "p1", "--name", "Tee", "--price", "10", "--size", "M")
    """
    from storefront.cli.main import cli

    def _invoke(*args: str, **kwargs):
        return cli_runner.invoke(cli, list(args), env=cli_env, **kwargs)

    return _invoke


@pytest.fixture()
def invoke_json(invoke):
    """Like invoke, but appends --json and parses the response.

    Returns (parsed_dict, exit_code) tuple.
    """

    def _invoke_json(*args: str) -> tuple[dict, int]:
        result = invoke(*args, "--json")
        parsed = json.loads(result.output)
        return parsed, result.exit_code

    return _invoke_json
