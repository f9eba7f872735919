"""Filesystem access used during reconciliation."""

from __future__ import annotations

import os
import stat as stat_module
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable


@dataclass(frozen=True, slots=True)
class FileStat:
    """Metadata the engine needs about a live path.

    Attributes:
        is_dir: Whether the path (after following symlinks) is a directory.
        mod_time: Modification time in UTC truncated to whole seconds.
        size: Size in bytes.
        identity: (device, inode) pair used to detect directory cycles, when known.
    """

    is_dir: bool
    mod_time: datetime
    size: int = 0
    identity: tuple[int, int] | None = None


def absolute_path(path: str | os.PathLike[str]) -> str:
    """Return the absolute form of a path without resolving symlinks."""
    return os.path.abspath(os.fspath(path))


def same_second(first: datetime, second: datetime) -> bool:
    """Compare two aware timestamps at whole-second precision."""
    return int(first.timestamp()) == int(second.timestamp())


class LocalFilesystem:
    """Read-only view of the local filesystem."""

    def stat(self, path: str | os.PathLike[str]) -> FileStat:
        """Return metadata for a path, following symlinks.

        Raises:
            FileNotFoundError: If the path does not exist.
            PermissionError: If the path cannot be inspected.
        """
        info = os.stat(path)
        modified = datetime.fromtimestamp(int(info.st_mtime), tz=timezone.utc)
        return FileStat(
            is_dir=stat_module.S_ISDIR(info.st_mode),
            mod_time=modified,
            size=info.st_size,
            identity=(info.st_dev, info.st_ino),
        )

    def list_directory(self, path: str | os.PathLike[str]) -> list[str]:
        """Return entry names of a directory sorted by name."""
        return sorted(os.listdir(path))

    def enumerate_recursive(
        self,
        paths: Iterable[str | os.PathLike[str]],
        on_denied: Callable[[Path], None] | None = None,
    ) -> list[Path]:
        """Expand paths depth first, each root followed by its descendants.

        Symlinked directories are listed but not descended into. Entries that
        vanish during the walk are skipped.

        Args:
            paths: Roots to expand.
            on_denied: Called with each directory that could not be read; the
                walk continues with its siblings. Without it the
                `PermissionError` propagates.

        Returns:
            list[Path]: Roots and their descendants in walk order.
        """
        found: list[Path] = []
        for root in paths:
            pending = [Path(root)]
            while pending:
                current = pending.pop()
                found.append(current)
                if current.is_symlink() and current != Path(root):
                    continue
                try:
                    if not self.stat(current).is_dir:
                        continue
                    names = self.list_directory(current)
                except FileNotFoundError:
                    continue
                except PermissionError:
                    if on_denied is None:
                        raise
                    on_denied(current)
                    continue
                pending.extend(current / name for name in reversed(names))
        return found


__all__ = ["FileStat", "LocalFilesystem", "absolute_path", "same_second"]
