"""Actor identity primitive: who is invoking a moderation operation.

An actor is the acting side of an operation, as opposed to the owner of a
collection.  The ``role`` field determines the baseline:

    shopper      – browses, owns a cart and wishlist; no catalog rights
    vendor       – creates and edits their own catalog items
    admin        – moderates; rights listed explicitly in ``permissions``
    super_admin  – every capability, regardless of ``permissions``

Capabilities are written ``resource:action`` (e.g. ``products:approve``).
"""

from __future__ import annotations

from dataclasses import dataclass, field

VALID_ROLES: tuple[str, ...] = ("shopper", "vendor", "admin", "super_admin")

# Full capability set of the built-in super admin account.
ALL_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "vendors": ("create", "read", "update", "delete", "approve", "reject"),
    "products": ("create", "read", "update", "delete", "approve", "reject"),
    "users": ("create", "read", "update", "delete"),
    "orders": ("create", "read", "update", "delete"),
    "analytics": ("read",),
    "settings": ("create", "read", "update", "delete"),
}


@dataclass(frozen=True)
class Actor:
    """Structured actor identity.

    ``vendor_id`` is set for vendor actors and is compared with
    ``CatalogItem.owner_ref`` for ownership checks.
    """

    id: str
    role: str
    permissions: dict[str, tuple[str, ...]] = field(default_factory=dict)
    vendor_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in ("admin", "super_admin")

    @property
    def is_vendor(self) -> bool:
        return self.role == "vendor"

    def has_permission(self, resource: str, action: str) -> bool:
        """Return ``True`` if this actor may perform *action* on *resource*."""
        if self.role == "super_admin":
            return True
        return action in self.permissions.get(resource, ())

    def has_capability(self, capability: str) -> bool:
        """Like ``has_permission`` but takes a ``resource:action`` string."""
        resource, action = parse_capability(capability)
        return self.has_permission(resource, action)

    def to_dict(self) -> dict:
        """Serialize to a dict for event storage / JSON output.

        Only includes non-empty optional fields.
        """
        d: dict = {"id": self.id, "role": self.role}
        if self.vendor_id is not None:
            d["vendor_id"] = self.vendor_id
        if self.permissions:
            d["permissions"] = {k: list(v) for k, v in sorted(self.permissions.items())}
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Actor:
        permissions = {k: tuple(v) for k, v in (d.get("permissions") or {}).items()}
        return cls(
            id=d["id"],
            role=d["role"],
            permissions=permissions,
            vendor_id=d.get("vendor_id"),
        )


# ---------------------------------------------------------------------------
# Validation / parsing
# ---------------------------------------------------------------------------


def parse_capability(capability: str) -> tuple[str, str]:
    """Split ``resource:action`` into its parts.

    Raises:
        ValueError: If the string is not of that form.
    """
    parts = capability.split(":", maxsplit=1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid capability format: '{capability}'")
    return parts[0], parts[1]


def parse_actor(actor_str: str) -> Actor:
    """Parse a ``role:id`` actor string, as accepted by the CLI.

    Admin actors parsed this way get no explicit permissions; use
    ``super_admin:<id>`` for full rights or build an :class:`Actor` directly.
    Vendor actors use their id as ``vendor_id``.
    """
    parts = actor_str.split(":", maxsplit=1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid actor format: '{actor_str}'")
    role, identifier = parts
    if role not in VALID_ROLES:
        raise ValueError(f"Unknown actor role '{role}'. Valid: {', '.join(VALID_ROLES)}")
    return Actor(
        id=identifier,
        role=role,
        vendor_id=identifier if role == "vendor" else None,
    )


def super_admin(admin_id: str) -> Actor:
    """Return a super admin actor carrying the full capability set."""
    return Actor(id=admin_id, role="super_admin", permissions=dict(ALL_PERMISSIONS))
