"""Guard the rule that tagged files and tagged directories never nest."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pathtag.state import Transaction

from .errors import HierarchyConflictError
from .filesystem import LocalFilesystem, absolute_path

LOGGER = logging.getLogger(__name__)


class HierarchyValidator:
    """Check whether a path may receive its first tag."""

    def __init__(self, tx: Transaction, filesystem: LocalFilesystem | None = None) -> None:
        self._tx = tx
        self._filesystem = filesystem or LocalFilesystem()

    def validate_labelable(self, path: str | os.PathLike[str]) -> None:
        """Raise if registering `path` would nest tagged entries.

        A directory may not be registered while anything beneath it is
        indexed, and no path may be registered beneath an indexed directory.
        Only first registration is gated; callers skip this check for paths
        that already have a record.

        Args:
            path: Path about to be registered.

        Raises:
            HierarchyConflictError: If the path conflicts with indexed entries.
            FileNotFoundError: If the path does not exist.
        """
        absolute = absolute_path(path)
        info = self._filesystem.stat(absolute)

        if info.is_dir:
            descendants = self._tx.files_by_directory_prefix(absolute)
            if descendants:
                LOGGER.debug("%s has %d indexed descendants", absolute, len(descendants))
                raise HierarchyConflictError(
                    f"Cannot tag directory '{absolute}' as it contains tagged items.",
                    path=absolute,
                    conflicts=[record.path for record in descendants],
                )

        for ancestor in Path(absolute).parents:
            if self._tx.file_by_path(str(ancestor)) is not None:
                kind = "directory" if info.is_dir else "file"
                raise HierarchyConflictError(
                    f"Cannot tag {kind} '{absolute}' as its parent directory '{ancestor}' "
                    "is tagged.",
                    path=absolute,
                    conflicts=[str(ancestor)],
                )


__all__ = ["HierarchyValidator"]
