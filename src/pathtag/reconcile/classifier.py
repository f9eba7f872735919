"""Classify paths by comparing index records against the live filesystem."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from pathtag.state import File, Transaction

from .filesystem import FileStat, LocalFilesystem, absolute_path, same_second
from .models import Status, StatusReport

LOGGER = logging.getLogger(__name__)

_NESTING_STATUSES = frozenset({Status.TAGGED, Status.MODIFIED, Status.NESTED})


class PathClassifier:
    """Determine the reconciliation status of paths.

    The store is consulted first; the filesystem is only read to confirm what
    the record says (tracked paths) or to look for tracked descendants
    (untracked directories). Filesystem errors other than a missing path
    propagate to the caller.
    """

    def __init__(self, tx: Transaction, filesystem: LocalFilesystem | None = None) -> None:
        self._tx = tx
        self._filesystem = filesystem or LocalFilesystem()

    def classify(self, path: str | os.PathLike[str]) -> Status:
        """Return the status of a single path.

        Args:
            path: File or directory, absolute or relative to the working directory.

        Returns:
            Status: `TAGGED`, `MODIFIED` or `MISSING` for indexed paths;
                `NESTED` or `UNTAGGED` otherwise.
        """
        absolute = absolute_path(path)
        record = self._tx.file_by_path(absolute)
        if record is not None:
            return self._tracked_status(record)
        return self._untracked_status(absolute)

    def report(
        self,
        paths: Iterable[str | os.PathLike[str]],
        *,
        show_directory: bool = False,
    ) -> StatusReport:
        """Build the grouped status listing for command-line arguments.

        Untagged or nested directories are expanded into their direct entries
        unless `show_directory` is set; indexed files beneath them that have
        disappeared from disk are appended as `MISSING`. This also applies to a
        directory argument that no longer exists.

        Args:
            paths: Arguments to report on; the working directory when empty.
            show_directory: Report directory arguments themselves.

        Returns:
            StatusReport: Paths grouped by status plus per-argument errors.
        """
        report = StatusReport()
        arguments = list(paths) or ["."]
        for argument in arguments:
            absolute = absolute_path(argument)
            status = self.classify(absolute)
            info = self._stat_or_none(absolute)

            if info is None and status is Status.UNTAGGED:
                vanished = [
                    record
                    for record in self._tx.files_by_directory_prefix(absolute)
                    if self._tracked_status(record) is Status.MISSING
                ]
                if not vanished:
                    report.errors.append(f"{argument}: no such file")
                for record in vanished:
                    report.add(Path(record.path), Status.MISSING)
                continue

            expand = (
                not show_directory
                and info is not None
                and info.is_dir
                and status in (Status.UNTAGGED, Status.NESTED)
            )
            if not expand:
                report.add(Path(absolute), status)
                continue

            for name in self._filesystem.list_directory(absolute):
                child = os.path.join(absolute, name)
                report.add(Path(child), self.classify(child))

            for record in self._tx.files_by_directory_prefix(absolute):
                if self._tracked_status(record) is Status.MISSING:
                    report.add(Path(record.path), Status.MISSING)

        LOGGER.debug("status report counts: %s", report.counts())
        return report

    def _tracked_status(self, record: File) -> Status:
        try:
            info = self._filesystem.stat(record.path)
        except FileNotFoundError:
            return Status.MISSING
        if same_second(record.mod_time, info.mod_time):
            return Status.TAGGED
        return Status.MODIFIED

    def _untracked_status(self, path: str) -> Status:
        info = self._stat_or_none(path)
        if info is None or not info.is_dir:
            return Status.UNTAGGED
        if not self._tx.files_by_directory_prefix(path):
            return Status.UNTAGGED
        if self._has_tracked_descendant(path, info):
            return Status.NESTED
        return Status.UNTAGGED

    def _has_tracked_descendant(self, root: str, root_info: FileStat) -> bool:
        """Walk the tree under root looking for a present, indexed path.

        Uses an explicit stack so the walk never recurses; directories already
        visited (by device and inode) are skipped to survive symlink cycles.
        """
        visited = {root_info.identity} if root_info.identity is not None else set()
        pending = [root]
        while pending:
            directory = pending.pop()
            try:
                names = self._filesystem.list_directory(directory)
            except FileNotFoundError:
                continue
            for name in names:
                entry = os.path.join(directory, name)
                record = self._tx.file_by_path(entry)
                if record is not None:
                    if self._tracked_status(record) in _NESTING_STATUSES:
                        return True
                    continue
                info = self._stat_or_none(entry)
                if info is None or not info.is_dir:
                    continue
                if info.identity is not None:
                    if info.identity in visited:
                        continue
                    visited.add(info.identity)
                pending.append(entry)
        return False

    def _stat_or_none(self, path: str) -> FileStat | None:
        try:
            return self._filesystem.stat(path)
        except FileNotFoundError:
            return None


__all__ = ["PathClassifier"]
