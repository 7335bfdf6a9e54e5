"""Atomic file writes, directory management, and profile root discovery."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

STOREFRONT_DIR = ".storefront"
STOREFRONT_ROOT_ENV = "STOREFRONT_ROOT"


def _fsync_directory(path: Path) -> None:
    """Sync the directory *path* so a rename into it survives a crash.

    Best effort: filesystems that refuse to open or sync a directory are
    skipped without error.
    """
    try:
        fd = os.open(str(path), os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def atomic_write(path: Path, content: str | bytes) -> None:
    """Replace *path* with *content* so readers never see a partial file.

    Bytes go to a sibling ``.tmp.*`` file that is synced and then renamed
    over *path*.  On any failure the sibling is removed and *path* keeps
    its previous contents.

    Raises:
        FileNotFoundError: If *path*'s directory is missing.
    """
    parent = path.parent
    if not parent.is_dir():
        raise FileNotFoundError(f"Parent directory does not exist: {parent}")

    data = content.encode("utf-8") if isinstance(content, str) else content

    fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".tmp.")
    closed = False
    try:
        # Partial writes are possible.
        mv = memoryview(data)
        while mv:
            written = os.write(fd, mv)
            mv = mv[written:]
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
        _fsync_directory(parent)
    except BaseException:
        if not closed:
            os.close(fd)
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def ensure_store_dirs(root: Path) -> Path:
    """Lay out ``.storefront/`` under *root* and return it.

    Safe to call on an existing store.
    """
    store_dir = root / STOREFRONT_DIR
    for subdir in ("cache", "events", "locks"):
        (store_dir / subdir).mkdir(parents=True, exist_ok=True)

    moderation_log = store_dir / "events" / "moderation.jsonl"
    if not moderation_log.exists():
        moderation_log.touch()
    return store_dir


def find_root(start: Path | None = None) -> Path | None:
    """Locate the directory that holds the local ``.storefront/`` store.

    ``$STOREFRONT_ROOT`` wins when present and must name a directory that
    already contains a store; a bad value is an error, not a reason to
    search.  Without it, *start* (the working directory by default) and
    each of its ancestors are tried in turn.  Returns ``None`` when no
    store is found.

    Raises:
        StorefrontRootError: ``$STOREFRONT_ROOT`` is empty or unusable.
    """
    env_root = os.environ.get(STOREFRONT_ROOT_ENV)
    if env_root is not None:
        if not env_root:
            raise StorefrontRootError("STOREFRONT_ROOT is set but empty")
        env_path = Path(env_root)
        if not env_path.is_dir():
            raise StorefrontRootError(
                f"STOREFRONT_ROOT points to a path that does not exist: {env_root}"
            )
        if not (env_path / STOREFRONT_DIR).is_dir():
            raise StorefrontRootError(
                f"STOREFRONT_ROOT points to a directory with no {STOREFRONT_DIR}/ inside: {env_root}"
            )
        return env_path

    current = (start or Path.cwd()).resolve()
    while True:
        if (current / STOREFRONT_DIR).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


class StorefrontRootError(Exception):
    """``$STOREFRONT_ROOT`` does not point at a usable store."""


def jsonl_append(path: Path, line: str) -> None:
    """Append one newline-terminated record to *path* and sync it.

    Callers serialize appends with the store lock.
    """
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(line)
        fh.flush()
        os.fsync(fh.fileno())
    _fsync_directory(path.parent)
