"""Default config generation and validation."""

from __future__ import annotations

import json
from typing import TypedDict

from storefront.core.ids import generate_device_id


class RemoteConfig(TypedDict, total=False):
    url: str
    key: str
    timeout_seconds: float


class StorefrontConfig(TypedDict, total=False):
    schema_version: int
    device_id: str
    guest_data_policy: str
    remote: RemoteConfig


# Values shipped in example env files; treated the same as "not configured".
PLACEHOLDER_VALUES: frozenset[str] = frozenset(
    {
        "your_supabase_project_url",
        "your_supabase_anon_key",
        "https://placeholder.supabase.co",
        "placeholder-key",
    }
)

VALID_GUEST_DATA_POLICIES: tuple[str, ...] = ("replace", "merge")

DEFAULT_REMOTE_TIMEOUT = 10.0


def default_config() -> StorefrontConfig:
    """Return the default storefront configuration.

    The returned dict, when serialized with
    ``json.dumps(data, sort_keys=True, indent=2) + "\\n"``,
    produces the canonical default config.json.  Remote settings are
    empty, so a fresh profile runs local-only.
    """
    return {
        "schema_version": 1,
        "device_id": generate_device_id(),
        "guest_data_policy": "replace",
        "remote": {
            "url": "",
            "key": "",
            "timeout_seconds": DEFAULT_REMOTE_TIMEOUT,
        },
    }


def serialize_config(config: StorefrontConfig | dict[str, object]) -> str:
    """Serialize a config dict to the canonical JSON format."""
    return json.dumps(config, sort_keys=True, indent=2) + "\n"


def load_config(raw: str) -> dict:
    """Parse a JSON config string and return the config dict.

    This is a pure function (no I/O).  The caller reads the file and
    passes the raw string here.
    """
    return json.loads(raw)


def is_placeholder(value: str | None) -> bool:
    """Return ``True`` if *value* is missing, blank, or a known placeholder."""
    if value is None:
        return True
    value = value.strip()
    return not value or value in PLACEHOLDER_VALUES


def validate_guest_data_policy(policy: str) -> bool:
    """Return ``True`` if *policy* is a known guest data policy."""
    return policy in VALID_GUEST_DATA_POLICIES


def get_remote_timeout(config: dict) -> float:
    """Return the remote timeout in seconds, falling back to the default."""
    value = config.get("remote", {}).get("timeout_seconds")
    if isinstance(value, (int, float)) and value > 0:
        return float(value)
    return DEFAULT_REMOTE_TIMEOUT
