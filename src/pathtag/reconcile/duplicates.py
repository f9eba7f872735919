"""Duplicate detection over indexed fingerprints."""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Iterable

from pathtag.fingerprint import EMPTY_FINGERPRINT, FingerprintEngine
from pathtag.state import File, Transaction

from .filesystem import LocalFilesystem, absolute_path
from .models import DuplicateSet, ProbeMatch, ProbeResult

LOGGER = logging.getLogger(__name__)


class DuplicateDetector:
    """Find indexed files that share content."""

    def __init__(
        self,
        tx: Transaction,
        engine: FingerprintEngine,
        filesystem: LocalFilesystem | None = None,
    ) -> None:
        self._tx = tx
        self._engine = engine
        self._filesystem = filesystem or LocalFilesystem()

    def find_all(self) -> list[DuplicateSet]:
        """Group every indexed file by fingerprint.

        Returns:
            list[DuplicateSet]: Groups with at least two members, ordered by
                fingerprint, members ordered by path. Files with an empty
                fingerprint are never grouped.
        """
        groups: dict[str, list[File]] = defaultdict(list)
        for record in self._tx.files():
            if record.fingerprint != EMPTY_FINGERPRINT:
                groups[record.fingerprint].append(record)

        sets = [
            DuplicateSet(fingerprint=fingerprint, files=sorted(members, key=lambda f: f.path))
            for fingerprint, members in sorted(groups.items())
            if len(members) > 1
        ]
        LOGGER.info("found %d sets of duplicate files", len(sets))
        return sets

    def find_matches(
        self,
        paths: Iterable[str | os.PathLike[str]],
        *,
        recursive: bool = False,
    ) -> ProbeResult:
        """Look up indexed duplicates of candidate paths.

        Candidates are fingerprinted from disk, not from the index. A candidate
        that is missing or unreadable is recorded as a warning and skipped while
        the remaining candidates are still processed.

        Args:
            paths: Files or directories to check.
            recursive: Also check everything beneath directory candidates.

        Returns:
            ProbeResult: Matches per candidate and any per-path warnings.
        """
        result = ProbeResult()
        valid: list[Path] = []
        for path in paths:
            warning = self._check_readable(path)
            if warning:
                result.warnings.append(warning)
                continue
            valid.append(Path(path))

        denied: set[Path] = set()

        def _deny(directory: Path) -> None:
            denied.add(directory)
            result.warnings.append(f"{directory}: permission denied")

        if recursive:
            candidates = self._filesystem.enumerate_recursive(valid, on_denied=_deny)
        else:
            candidates = valid
        for candidate in candidates:
            if candidate in denied:
                continue
            LOGGER.debug("%s: identifying duplicate files", candidate)
            try:
                fingerprint = self._engine.fingerprint(candidate)
            except FileNotFoundError:
                result.warnings.append(f"{candidate}: no such file")
                continue
            except PermissionError:
                result.warnings.append(f"{candidate}: permission denied")
                continue
            result.candidates += 1
            if fingerprint == EMPTY_FINGERPRINT:
                continue

            own_path = absolute_path(candidate)
            duplicates = [
                record
                for record in self._tx.files_by_fingerprint(fingerprint)
                if record.path != own_path
            ]
            if duplicates:
                result.matches.append(ProbeMatch(path=candidate, duplicates=duplicates))
        return result

    def _check_readable(self, path: str | os.PathLike[str]) -> str | None:
        try:
            self._filesystem.stat(path)
        except FileNotFoundError:
            return f"{path}: no such file"
        except PermissionError:
            return f"{path}: permission denied"
        return None


__all__ = ["DuplicateDetector"]
