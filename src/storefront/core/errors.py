"""Error taxonomy shared by the sync engine and the moderation workflow."""

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for all storefront errors.

    ``code`` is the stable identifier used in CLI JSON envelopes.
    """

    code = "STOREFRONT_ERROR"


class RemoteUnavailable(StorefrontError):
    """The remote store could not be reached or rejected the request.

    Always recovered locally.  Never surfaced to collaborators; engines
    report it through their result bus instead.
    """

    code = "REMOTE_UNAVAILABLE"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidTransition(StorefrontError):
    """A moderation transition not allowed from the item's current status."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str | None, to_status: str, message: str | None = None) -> None:
        self.from_status = from_status
        self.to_status = to_status
        if message is None:
            source = from_status if from_status is not None else "(new)"
            message = f"Cannot move from '{source}' to '{to_status}'"
        super().__init__(message)


class PermissionDenied(StorefrontError):
    """The acting identity lacks the capability for an operation."""

    code = "PERMISSION_DENIED"

    def __init__(self, capability: str, message: str | None = None) -> None:
        self.capability = capability
        super().__init__(message or f"Missing capability: {capability}")


class ValidationError(StorefrontError):
    """Submitted fields are missing or malformed."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = list(fields or [])


class NotFound(StorefrontError):
    """No entity with the given key exists in the collection."""

    code = "NOT_FOUND"
