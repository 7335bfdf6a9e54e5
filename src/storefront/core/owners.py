"""Owner identity: who a tracked collection belongs to.

An owner is either an anonymous device (no network identity, local cache
only) or an authenticated account issued by the external identity
provider.  Vendors additionally carry the id of their ``vendors`` row,
which is what ``vendor_products.vendor_id`` references.
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront.core.ids import generate_device_id


@dataclass(frozen=True)
class Owner:
    id: str
    authenticated: bool = False
    vendor_id: str | None = None
    # Bearer token from the identity provider; never persisted.
    access_token: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return not self.authenticated

    def remote_id(self, owner_column: str) -> str | None:
        """Return the id stored in *owner_column* for this owner's rows."""
        if not self.authenticated:
            return None
        if owner_column == "vendor_id":
            return self.vendor_id
        return self.id

    def same_identity(self, other: Owner | None) -> bool:
        if other is None:
            return False
        return self.authenticated == other.authenticated and self.id == other.id

    def to_dict(self) -> dict:
        d: dict = {"id": self.id, "authenticated": self.authenticated}
        if self.vendor_id is not None:
            d["vendor_id"] = self.vendor_id
        return d


def anonymous(device_id: str | None = None) -> Owner:
    """Return an anonymous owner for this device."""
    return Owner(id=device_id or generate_device_id(), authenticated=False)


def account(
    account_id: str,
    *,
    vendor_id: str | None = None,
    access_token: str | None = None,
) -> Owner:
    """Return an authenticated owner for *account_id*."""
    if not account_id:
        raise ValueError("Account id cannot be empty.")
    return Owner(
        id=account_id,
        authenticated=True,
        vendor_id=vendor_id,
        access_token=access_token,
    )
