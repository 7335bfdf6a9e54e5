"""Async client for the remote store's PostgREST-style table API.

One method call is one HTTP round trip: no retries, no batching.  Every
transport or HTTP-status failure is raised as ``RemoteUnavailable`` so
callers never see a library exception.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from storefront.core.entities import EntityKind, NaturalKey, TrackedEntity, Vendor
from storefront.core.errors import RemoteUnavailable
from storefront.sync.config import FallbackMode
from storefront.sync.records import from_remote, key_filter

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"


class RemoteStore:
    """Per-entity-kind read/upsert/delete against the remote tables.

    The adapter owns an ``httpx.AsyncClient`` unless one is injected
    (tests pass a client built on ``httpx.MockTransport``).

    Example:
        >>> remote = RemoteStore("https://db.example.com", "anon-key")
        >>> rows = await remote.fetch_all(CART, "user-1")
        >>> await remote.upsert(CART, row, CART.conflict_columns)
    """

    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.key = key
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_fallback(
        cls,
        mode: FallbackMode,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> RemoteStore | None:
        """Build a store for *mode*, or ``None`` when running local-only."""
        if mode.local_only or not mode.url or not mode.key:
            return None
        return cls(mode.url, mode.key, timeout=mode.timeout, client=client)

    # ------------------------------------------------------------------
    # Tracked collections
    # ------------------------------------------------------------------

    async def fetch_all(
        self,
        kind: EntityKind,
        owner_id: str | None,
        *,
        token: str | None = None,
    ) -> list[TrackedEntity]:
        """Return *owner_id*'s rows of *kind*, newest first.

        ``owner_id=None`` reads the whole table (admin-wide catalog view).
        """
        params = {"select": "*", "order": "created_at.desc"}
        if owner_id is not None:
            params[kind.owner_column] = f"eq.{owner_id}"
        response = await self._request("GET", kind.table, params=params, token=token)
        rows = _json_list(response)
        try:
            return [from_remote(kind, row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteUnavailable(f"malformed {kind.table} row: {exc}") from exc

    async def upsert(
        self,
        kind: EntityKind,
        record: dict,
        conflict_key: tuple[str, ...],
        *,
        token: str | None = None,
    ) -> None:
        """Insert *record* or merge it into the row sharing *conflict_key*."""
        await self._request(
            "POST",
            kind.table,
            params={"on_conflict": ",".join(conflict_key)},
            json=record,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            token=token,
        )

    async def delete(
        self,
        kind: EntityKind,
        owner_id: str | None,
        natural_key: NaturalKey,
        *,
        token: str | None = None,
    ) -> None:
        """Delete the single row identified by *owner_id* + *natural_key*."""
        params = {column: f"eq.{value}" for column, value in key_filter(kind, natural_key).items()}
        if owner_id is not None and kind.owner_column not in params:
            params[kind.owner_column] = f"eq.{owner_id}"
        await self._request("DELETE", kind.table, params=params, token=token)

    async def delete_all(
        self,
        kind: EntityKind,
        owner_id: str,
        *,
        token: str | None = None,
    ) -> None:
        """Delete every row of *kind* belonging to *owner_id*."""
        if not owner_id:
            raise RemoteUnavailable("refusing unscoped delete_all")
        await self._request(
            "DELETE",
            kind.table,
            params={kind.owner_column: f"eq.{owner_id}"},
            token=token,
        )

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    async def fetch_vendor(self, user_id: str, *, token: str | None = None) -> Vendor | None:
        """Return the vendor row for account *user_id*, or ``None``."""
        response = await self._request(
            "GET",
            "vendors",
            params={"select": "*", "user_id": f"eq.{user_id}", "limit": "1"},
            token=token,
        )
        rows = _json_list(response)
        if not rows:
            return None
        try:
            return Vendor.from_dict(rows[0])
        except (KeyError, TypeError) as exc:
            raise RemoteUnavailable(f"malformed vendors row: {exc}") from exc

    async def set_vendor_approval(
        self,
        vendor_id: str,
        approved: bool,
        *,
        token: str | None = None,
    ) -> None:
        await self._request(
            "PATCH",
            "vendors",
            params={"id": f"eq.{vendor_id}"},
            json={"is_approved": approved},
            headers={"Prefer": "return=minimal"},
            token=token,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> RemoteStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _headers(self, token: str | None) -> dict[str, str]:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {token or self.key}",
            "Accept": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        token: str | None = None,
    ) -> httpx.Response:
        url = f"{self.url}{REST_PREFIX}/{table}"
        request_headers = self._headers(token)
        if headers:
            request_headers.update(headers)
        try:
            response = await self._get_client().request(
                method,
                url,
                params=params,
                json=json,
                headers=request_headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            raise RemoteUnavailable(f"{method} {table} timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailable(f"{method} {table} failed: {exc}") from exc

        if response.status_code >= 400:
            detail = response.text[:200]
            raise RemoteUnavailable(
                f"{method} {table} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )
        logger.debug("%s %s -> %s", method, table, response.status_code)
        return response


def _json_list(response: httpx.Response) -> list[dict]:
    try:
        data = response.json()
    except ValueError as exc:
        raise RemoteUnavailable(f"invalid JSON from remote: {exc}") from exc
    if not isinstance(data, list):
        raise RemoteUnavailable("expected a JSON array from remote")
    return data
