"""Dual-persistence sync engine: one instance per tracked collection.

Every mutation is applied to the in-memory collection and the local cache
synchronously, then mirrored to the remote store as a fire-and-forget
asyncio task.  Remote outcomes never reach the caller; they are published
as :class:`RemoteResult` values on the engine's result bus.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from storefront.core.entities import CartLine, EntityKind, NaturalKey, TrackedEntity
from storefront.core.errors import RemoteUnavailable, ValidationError
from storefront.core.events import utc_now
from storefront.core.owners import Owner
from storefront.storage.bus import ResultBus
from storefront.storage.local_cache import LocalCache
from storefront.sync.config import FallbackMode, get_fallback_mode
from storefront.sync.records import to_remote
from storefront.sync.remote import RemoteStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of one remote attempt (``load``, ``upsert``, ``delete``, ...)."""

    op: str
    kind: str
    key: NaturalKey | None
    ok: bool
    error: str | None = None


class SyncEngine:
    """Local-first collection of one entity kind for one owner.

    Example:
        >>> engine = SyncEngine(CART, owner, cache=LocalCache(store_dir))
        >>> engine.add(CartLine(product, "M", quantity=2))
        >>> await engine.drain()
    """

    def __init__(
        self,
        kind: EntityKind,
        owner: Owner,
        *,
        cache: LocalCache,
        remote: RemoteStore | None = None,
        fallback: FallbackMode | None = None,
    ) -> None:
        self.kind = kind
        self.owner = owner
        self.cache = cache
        self.remote = remote
        self.fallback = fallback if fallback is not None else get_fallback_mode()
        self.results: ResultBus[RemoteResult] = ResultBus()
        self.last_source = "local"
        self._pending: set[asyncio.Task] = set()
        self._generation = 0
        self._mutations = 0
        self._items: list[TrackedEntity] = self._read_local()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[TrackedEntity]:
        return list(self._items)

    @property
    def remote_enabled(self) -> bool:
        """Whether mutations and loads go to the remote store for this owner."""
        if self.remote is None or self.fallback.local_only:
            return False
        if not self.owner.authenticated:
            return False
        return not self.kind.scoped or self._remote_owner_id() is not None

    def get(self, key: NaturalKey) -> TrackedEntity | None:
        index = self._index(tuple(key))
        return self._items[index] if index is not None else None

    def contains(self, key: NaturalKey) -> bool:
        return self._index(tuple(key)) is not None

    def subscribe(self, observer: Callable[[RemoteResult], None]) -> None:
        self.results.register(observer)

    def unsubscribe(self, observer: Callable[[RemoteResult], None]) -> None:
        self.results.unregister(observer)

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(self) -> list[TrackedEntity]:
        """Replace the collection from remote, or from the local cache.

        Never raises.  A load that finishes after the owner changed is
        discarded.  If the collection was mutated while the fetch was in
        flight, the in-memory collection is kept and only re-persisted.
        """
        generation = self._generation
        mutations = self._mutations
        owner = self.owner
        source = "local"

        if self.remote_enabled:
            try:
                loaded = await self.remote.fetch_all(  # type: ignore[union-attr]
                    self.kind,
                    self._remote_owner_id() if self.kind.scoped else None,
                    token=owner.access_token,
                )
            except Exception as exc:
                logger.warning(
                    "%s: remote load failed, using local cache: %s", self.kind.name, exc
                )
                self.results.publish(RemoteResult("load", self.kind.name, None, False, str(exc)))
                loaded = self._read_local()
            else:
                source = "remote"
                self.results.publish(RemoteResult("load", self.kind.name, None, True))
        else:
            loaded = self._read_local()

        if generation != self._generation:
            logger.info("%s: discarding load for previous owner %s", self.kind.name, owner.id)
            return self.items

        if mutations != self._mutations:
            logger.info(
                "%s: collection changed during load, keeping local state", self.kind.name
            )
            self.last_source = "local"
            self.persist_locally()
            return self.items

        self._items = list(loaded)
        self.last_source = source
        self.persist_locally()
        return self.items

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, item: TrackedEntity) -> list[TrackedEntity]:
        """Insert *item*, or merge it into the entity sharing its key.

        Raises:
            ValidationError: If a cart line's quantity is not a positive int.
        """
        if isinstance(item, CartLine):
            _check_quantity(item.quantity)
        if item.created_at is None:
            item = dataclasses.replace(item, created_at=utc_now())

        key = self.kind.key_of(item)
        index = self._index(key)
        if index is None:
            stored = item
            self._items.insert(0, stored)
        else:
            stored = self.kind.merge(self._items[index], item)
            self._items[index] = stored

        self._mutations += 1
        self.persist_locally()
        self._schedule_upsert(key, stored)
        return self.items

    def remove(self, key: NaturalKey) -> list[TrackedEntity]:
        key = tuple(key)
        index = self._index(key)
        if index is None:
            return self.items

        del self._items[index]
        self._mutations += 1
        self.persist_locally()

        owner_id = self._remote_owner_id()
        token = self.owner.access_token
        self.schedule_remote(
            "delete",
            key,
            lambda: self.remote.delete(self.kind, owner_id, key, token=token),  # type: ignore[union-attr]
        )
        return self.items

    def update(self, key: NaturalKey, patch: dict) -> list[TrackedEntity]:
        """Apply *patch* to the entity at *key*.

        A ``quantity`` of zero or less removes the entity.  Updating a
        missing key is a no-op.

        Raises:
            ValidationError: If *patch* names an immutable field or changes
                the natural key.
        """
        key = tuple(key)
        index = self._index(key)
        if index is None:
            return self.items

        if "quantity" in patch:
            quantity = patch["quantity"]
            if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity <= 0:
                return self.remove(key)
            _check_quantity(quantity)

        updated = self.kind.apply_patch(self._items[index], patch)
        if self.kind.key_of(updated) != key:
            raise ValidationError(f"Cannot change the key of a {self.kind.name} entry")

        self._items[index] = updated
        self._mutations += 1
        self.persist_locally()
        self._schedule_upsert(key, updated)
        return self.items

    def toggle(self, item: TrackedEntity) -> bool:
        """Remove *item* if present, add it otherwise.  Returns presence after."""
        key = self.kind.key_of(item)
        if self.contains(key):
            self.remove(key)
            return False
        self.add(item)
        return True

    def clear(self) -> list[TrackedEntity]:
        """Empty the collection and its local cache key.

        The remote delete-all only targets this owner's rows; the unscoped
        admin view is cleared locally only.
        """
        self._items = []
        self._mutations += 1
        self.persist_locally()

        if self.kind.scoped:
            owner_id = self._remote_owner_id()
            token = self.owner.access_token
            self.schedule_remote(
                "delete_all",
                None,
                lambda: self.remote.delete_all(self.kind, owner_id, token=token),  # type: ignore[union-attr]
            )
        return self.items

    def persist_locally(self) -> bool:
        """Serialize the whole collection into the local cache."""
        return self.cache.write(self.kind.local_key, [self.kind.to_dict(i) for i in self._items])

    # ------------------------------------------------------------------
    # Owner changes
    # ------------------------------------------------------------------

    def switch_owner(self, owner: Owner, *, clear_local: bool = False) -> None:
        """Rebind the engine to *owner* and drop the in-memory collection.

        Loads started for the previous owner are discarded when they
        complete.  With *clear_local* the local cache key is removed too.
        """
        self._generation += 1
        self.owner = owner
        self._items = []
        if clear_local:
            self.cache.remove(self.kind.local_key)

    # ------------------------------------------------------------------
    # Remote dispatch
    # ------------------------------------------------------------------

    def schedule_remote(
        self,
        op: str,
        key: NaturalKey | None,
        make_call: Callable[[], Awaitable[None]],
    ) -> asyncio.Task | None:
        """Start ``make_call()`` on the running loop without awaiting it.

        Skipped outright when remote sync is off for this owner.  With no
        running loop the write is skipped and reported as a failure.
        """
        if not self.remote_enabled:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            exc = RemoteUnavailable("no running event loop; remote write skipped")
            logger.warning("%s: %s %s skipped: %s", self.kind.name, op, key, exc)
            self.results.publish(RemoteResult(op, self.kind.name, key, False, str(exc)))
            return None

        task = loop.create_task(self._run_remote(op, key, make_call))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight remote write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _run_remote(
        self,
        op: str,
        key: NaturalKey | None,
        make_call: Callable[[], Awaitable[None]],
    ) -> None:
        try:
            await make_call()
        except Exception as exc:
            logger.warning("%s: remote %s %s failed: %s", self.kind.name, op, key, exc)
            self.results.publish(RemoteResult(op, self.kind.name, key, False, str(exc)))
            return
        self.results.publish(RemoteResult(op, self.kind.name, key, True))

    def _schedule_upsert(self, key: NaturalKey, item: TrackedEntity) -> None:
        if not self.remote_enabled:
            return
        record = to_remote(self.kind, item, self._remote_owner_id())
        token = self.owner.access_token
        self.schedule_remote(
            "upsert",
            key,
            lambda: self.remote.upsert(  # type: ignore[union-attr]
                self.kind, record, self.kind.conflict_columns, token=token
            ),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _remote_owner_id(self) -> str | None:
        return self.owner.remote_id(self.kind.owner_column)

    def _index(self, key: NaturalKey) -> int | None:
        for i, item in enumerate(self._items):
            if self.kind.key_of(item) == key:
                return i
        return None

    def _read_local(self) -> list[TrackedEntity]:
        items: list[TrackedEntity] = []
        for row in self.cache.read(self.kind.local_key):
            try:
                items.append(self.kind.from_dict(row))
            except (KeyError, TypeError, ValueError) as exc:
                logger.error("%s: skipping unreadable cached row: %s", self.kind.name, exc)
        return items


def _check_quantity(quantity: object) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}", fields=["quantity"])
