"""Reconcile tracked collections when the signed-in identity changes.

The handler fires once per real transition between anonymous and
authenticated; repeated notifications for the same identity (page
navigation, token refresh) are ignored.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Iterable
from enum import Enum

from storefront.core.errors import RemoteUnavailable
from storefront.core.owners import Owner, anonymous
from storefront.sync.config import FallbackMode, get_fallback_mode
from storefront.sync.engine import SyncEngine
from storefront.sync.remote import RemoteStore

logger = logging.getLogger(__name__)


class GuestDataPolicy(str, Enum):
    """What happens to guest items when a guest signs in.

    ``REPLACE`` keeps only the account's collection.  ``MERGE`` re-adds the
    guest items on top of it and pushes them to the remote store.
    """

    REPLACE = "replace"
    MERGE = "merge"


class Transition(str, Enum):
    NONE = "none"
    SIGN_IN = "sign_in"
    SIGN_OUT = "sign_out"
    SWITCH = "switch"


def classify_transition(current: Owner | None, new: Owner) -> Transition:
    """Return the kind of identity change from *current* to *new*."""
    if current is None:
        return Transition.SIGN_IN if new.authenticated else Transition.NONE
    if current.authenticated and new.authenticated:
        return Transition.NONE if current.same_identity(new) else Transition.SWITCH
    if current.authenticated:
        return Transition.SIGN_OUT
    if new.authenticated:
        return Transition.SIGN_IN
    return Transition.NONE


class IdentityTransitionHandler:
    """Drive every engine through sign-in and sign-out.

    Args:
        engines: Engines sharing the current owner.
        fallback: Process fallback mode; defaults to :func:`get_fallback_mode`.
        guest_policy: Guest data handling on sign-in.
        remote: When given, vendor accounts get their ``vendor_id``
            resolved before the catalog engine loads.
    """

    def __init__(
        self,
        engines: Iterable[SyncEngine],
        *,
        fallback: FallbackMode | None = None,
        guest_policy: GuestDataPolicy | str = GuestDataPolicy.REPLACE,
        remote: RemoteStore | None = None,
    ) -> None:
        self.engines = list(engines)
        self.fallback = fallback if fallback is not None else get_fallback_mode()
        self.guest_policy = GuestDataPolicy(guest_policy)
        self.remote = remote
        self.current: Owner | None = self.engines[0].owner if self.engines else None
        self._device = self.current if self.current and self.current.is_anonymous else None

    async def on_auth_state_change(self, owner: Owner) -> Transition:
        """Handle an auth-state notification carrying the new *owner*."""
        transition = classify_transition(self.current, owner)
        if transition == Transition.NONE:
            if self.current is not None and owner.authenticated and owner.access_token:
                # Same account; keep the refreshed token for later writes.
                self._rebind_token(owner)
            return transition

        logger.info(
            "identity %s: %s -> %s",
            transition.value,
            self.current.id if self.current else None,
            owner.id,
        )

        if transition == Transition.SIGN_OUT:
            self._sign_out(owner)
        elif transition == Transition.SIGN_IN:
            await self._sign_in(owner)
        else:
            self._sign_out(self._device_owner())
            await self._sign_in(owner)
        return transition

    def _sign_out(self, device_owner: Owner) -> None:
        self._device = device_owner
        for engine in self.engines:
            engine.switch_owner(device_owner, clear_local=engine.kind.clear_on_logout)
        self.current = device_owner

    async def _sign_in(self, owner: Owner) -> None:
        if self.remote is not None:
            owner = await resolve_vendor_owner(self.remote, owner, self.fallback)

        guest: dict[int, list] = {}
        if self.guest_policy == GuestDataPolicy.MERGE:
            guest = {id(engine): engine.items for engine in self.engines}

        for engine in self.engines:
            engine.switch_owner(owner)
        await asyncio.gather(*(engine.load() for engine in self.engines))
        self.current = owner

        if self.guest_policy != GuestDataPolicy.MERGE or self.fallback.local_only:
            return
        for engine in self.engines:
            # Local-only loads already returned the guest items.
            if engine.last_source != "remote":
                continue
            for item in reversed(guest.get(id(engine), [])):
                engine.add(item)

    def _rebind_token(self, owner: Owner) -> None:
        for engine in self.engines:
            engine.owner = dataclasses.replace(engine.owner, access_token=owner.access_token)
        self.current = dataclasses.replace(self.current, access_token=owner.access_token)  # type: ignore[arg-type]

    def _device_owner(self) -> Owner:
        if self._device is None:
            self._device = anonymous()
        return self._device


async def resolve_vendor_owner(
    remote: RemoteStore | None,
    owner: Owner,
    fallback: FallbackMode | None = None,
) -> Owner:
    """Return *owner* with ``vendor_id`` set from its ``vendors`` row.

    Owners that are anonymous, already resolved, or not vendors come back
    unchanged, as does any owner when the remote store is unreachable.
    """
    mode = fallback if fallback is not None else get_fallback_mode()
    if remote is None or mode.local_only or owner.is_anonymous or owner.vendor_id:
        return owner
    try:
        vendor = await remote.fetch_vendor(owner.id, token=owner.access_token)
    except RemoteUnavailable as exc:
        logger.warning("could not resolve vendor for %s: %s", owner.id, exc)
        return owner
    if vendor is None:
        return owner
    return dataclasses.replace(owner, vendor_id=vendor.id)
