"""Fingerprint computation for files and directories."""

from __future__ import annotations

import hashlib
import logging
import os
import stat
from pathlib import Path
from typing import Iterator

from pathtag.config.models import FingerprintSettings

LOGGER = logging.getLogger(__name__)

EMPTY_FINGERPRINT = ""

FILE_ALGORITHMS = frozenset(
    {
        "dynamic:sha256",
        "dynamic:sha1",
        "dynamic:md5",
        "sha256",
        "sha1",
        "md5",
        "blake2b",
        "none",
    }
)
DIRECTORY_ALGORITHMS = frozenset({"none", "sum_sizes", "sha256"})

CHUNK_SIZE = 65536
SPARSE_THRESHOLD = 5 * 1024 * 1024
FRAGMENT_SIZE = 512 * 1024


def _full_digest(path: Path, algorithm: str) -> str:
    digest = hashlib.new(algorithm)
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _sparse_digest(path: Path, algorithm: str, size: int) -> str:
    """Digest the size plus the first, middle and last fragments of a large file."""
    digest = hashlib.new(algorithm)
    digest.update(str(size).encode("ascii"))
    with open(path, "rb") as handle:
        for offset in (0, (size - FRAGMENT_SIZE) // 2, size - FRAGMENT_SIZE):
            handle.seek(offset)
            digest.update(handle.read(FRAGMENT_SIZE))
    return digest.hexdigest()


class FingerprintEngine:
    """Derive content identities using configurable algorithms.

    Fingerprints are plain strings. The empty string means no identity could be
    derived (empty files, the `none` algorithms, directories without files) and
    such values never take part in duplicate comparisons.
    """

    def __init__(
        self,
        file_algorithm: str = "dynamic:sha256",
        directory_algorithm: str = "none",
    ) -> None:
        """Initialize the engine.

        Args:
            file_algorithm: One of `FILE_ALGORITHMS`.
            directory_algorithm: One of `DIRECTORY_ALGORITHMS`.

        Raises:
            ValueError: If either algorithm name is unknown.
        """
        if file_algorithm not in FILE_ALGORITHMS:
            raise ValueError(f"Unsupported file fingerprint algorithm '{file_algorithm}'.")
        if directory_algorithm not in DIRECTORY_ALGORITHMS:
            raise ValueError(
                f"Unsupported directory fingerprint algorithm '{directory_algorithm}'."
            )
        self.file_algorithm = file_algorithm
        self.directory_algorithm = directory_algorithm

    @classmethod
    def from_settings(cls, settings: FingerprintSettings) -> "FingerprintEngine":
        """Build an engine from the `fingerprint` configuration section."""
        return cls(settings.file_algorithm, settings.directory_algorithm)

    def fingerprint(self, path: Path) -> str:
        """Return the fingerprint of a file or directory.

        Symbolic links are followed.

        Args:
            path: File or directory to fingerprint.

        Returns:
            str: Hex digest (or size total for `sum_sizes`), or `EMPTY_FINGERPRINT`.

        Raises:
            OSError: If the path cannot be read.
        """
        info = os.stat(path)
        if stat.S_ISDIR(info.st_mode):
            value = self._directory_fingerprint(Path(path))
        else:
            value = self._file_fingerprint(Path(path), info.st_size)
        LOGGER.debug("fingerprint of %s is %r", path, value)
        return value

    def _file_fingerprint(self, path: Path, size: int) -> str:
        if self.file_algorithm == "none" or size == 0:
            return EMPTY_FINGERPRINT

        dynamic, _, algorithm = self.file_algorithm.rpartition(":")
        if dynamic and size > SPARSE_THRESHOLD:
            return _sparse_digest(path, algorithm, size)
        return _full_digest(path, algorithm)

    def _directory_fingerprint(self, path: Path) -> str:
        if self.directory_algorithm == "none":
            return EMPTY_FINGERPRINT

        if self.directory_algorithm == "sum_sizes":
            total = sum(size for _, _, size in self._iter_files(path))
            return str(total) if total else EMPTY_FINGERPRINT

        digest = hashlib.sha256()
        contributed = False
        for relative, child, size in self._iter_files(path):
            try:
                child_fingerprint = self._file_fingerprint(child, size)
            except FileNotFoundError:
                continue
            if not child_fingerprint:
                continue
            digest.update(f"{relative}\0{child_fingerprint}\n".encode("utf-8"))
            contributed = True
        return digest.hexdigest() if contributed else EMPTY_FINGERPRINT

    def _iter_files(self, root: Path) -> Iterator[tuple[str, Path, int]]:
        """Yield (relative name, path, size) for regular files beneath root, sorted by name."""
        pending = [root]
        found: list[tuple[str, Path, int]] = []
        while pending:
            directory = pending.pop()
            try:
                entries = list(os.scandir(directory))
            except FileNotFoundError:
                continue
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        pending.append(Path(entry.path))
                    elif entry.is_file():
                        size = entry.stat().st_size
                        relative = Path(entry.path).relative_to(root).as_posix()
                        found.append((relative, Path(entry.path), size))
                except FileNotFoundError:
                    continue
        found.sort(key=lambda item: item[0])
        yield from found


__all__ = [
    "DIRECTORY_ALGORITHMS",
    "EMPTY_FINGERPRINT",
    "FILE_ALGORITHMS",
    "FingerprintEngine",
]
