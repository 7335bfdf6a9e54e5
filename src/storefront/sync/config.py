"""Remote configuration and the process-wide fallback mode decision.

The decision is made once: the first call to :func:`get_fallback_mode`
inspects ``STOREFRONT_REMOTE_URL`` / ``STOREFRONT_REMOTE_KEY`` and the
``remote`` block of ``.storefront/config.json`` (environment wins) and
caches the result.  Every component consults that cached value, or is
handed the same :class:`FallbackMode` instance, so one session can never
mix remote-backed and local-only behaviour.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from storefront.core.config import (
    DEFAULT_REMOTE_TIMEOUT,
    get_remote_timeout,
    is_placeholder,
    load_config,
    serialize_config,
)

logger = logging.getLogger(__name__)

REMOTE_URL_ENV = "STOREFRONT_REMOTE_URL"
REMOTE_KEY_ENV = "STOREFRONT_REMOTE_KEY"


@dataclass(frozen=True)
class FallbackMode:
    """Whether the remote tier is in play for this process."""

    remote_available: bool
    url: str | None = None
    key: str | None = None
    timeout: float = DEFAULT_REMOTE_TIMEOUT
    reason: str = ""

    @property
    def local_only(self) -> bool:
        return not self.remote_available

    @classmethod
    def local(cls, reason: str = "remote sync disabled") -> FallbackMode:
        return cls(remote_available=False, reason=reason)

    @classmethod
    def remote(cls, url: str, key: str, timeout: float = DEFAULT_REMOTE_TIMEOUT) -> FallbackMode:
        return cls(remote_available=True, url=url.rstrip("/"), key=key, timeout=timeout)

    def describe(self) -> dict:
        """Return a JSON-safe summary (the credential is never included)."""
        return {
            "mode": "remote" if self.remote_available else "local-only",
            "url": self.url,
            "timeout_seconds": self.timeout,
            "reason": self.reason,
        }


def resolve_fallback_mode(
    config: dict | None = None,
    environ: dict[str, str] | None = None,
) -> FallbackMode:
    """Compute the fallback decision from *config* and *environ*.

    Pure apart from reading *environ* (defaults to ``os.environ``).  Use
    :func:`get_fallback_mode` everywhere else.
    """
    env = os.environ if environ is None else environ
    remote_cfg = (config or {}).get("remote", {}) or {}

    url = env.get(REMOTE_URL_ENV) or remote_cfg.get("url")
    key = env.get(REMOTE_KEY_ENV) or remote_cfg.get("key")
    timeout = get_remote_timeout(config or {})

    if is_placeholder(url):
        return FallbackMode.local("remote URL missing or placeholder")
    if is_placeholder(key):
        return FallbackMode.local("remote key missing or placeholder")
    if not url.startswith(("http://", "https://")):  # type: ignore[union-attr]
        return FallbackMode.local(f"remote URL is not http(s): {url}")
    return FallbackMode.remote(url, key, timeout)  # type: ignore[arg-type]


_current: FallbackMode | None = None


def get_fallback_mode(config: dict | None = None) -> FallbackMode:
    """Return the process-wide fallback decision, computing it on first use.

    *config* is only consulted on the first call; later calls return the
    cached decision unchanged.
    """
    global _current
    if _current is None:
        _current = resolve_fallback_mode(config)
        if _current.local_only:
            logger.info("running local-only: %s", _current.reason)
        else:
            logger.info("remote sync enabled: %s", _current.url)
    return _current


def set_fallback_mode(mode: FallbackMode) -> FallbackMode:
    """Install *mode* as the process-wide decision (startup wiring and tests)."""
    global _current
    _current = mode
    return mode


def reset_fallback_mode() -> None:
    """Forget the cached decision so the next call recomputes it."""
    global _current
    _current = None


def load_remote_config(store_dir: Path) -> dict:
    """Return the ``config.json`` dict for *store_dir*, or ``{}`` if absent."""
    config_path = store_dir / "config.json"
    if config_path.exists():
        return load_config(config_path.read_text())
    return {}


def save_remote_config(store_dir: Path, url: str, key: str, timeout: float | None = None) -> dict:
    """Write the ``remote`` block of ``config.json`` and return the config."""
    from storefront.storage.fs import atomic_write

    config = load_remote_config(store_dir)
    remote = dict(config.get("remote") or {})
    remote["url"] = url
    remote["key"] = key
    if timeout is not None:
        remote["timeout_seconds"] = timeout
    config["remote"] = remote
    store_dir.mkdir(parents=True, exist_ok=True)
    atomic_write(store_dir / "config.json", serialize_config(config))
    return config
