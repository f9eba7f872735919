"""Structured outcomes produced by the reconciliation engine."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from pydantic import BaseModel, Field

from pathtag.state.models import File


class Status(Enum):
    """Reconciliation state of a path; each value is its report symbol."""

    TAGGED = "T"
    MODIFIED = "M"
    NESTED = "+"
    MISSING = "!"
    UNTAGGED = "?"

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return self.name.lower()


REPORT_ORDER: Tuple[Status, ...] = (
    Status.TAGGED,
    Status.MODIFIED,
    Status.NESTED,
    Status.MISSING,
    Status.UNTAGGED,
)


class StatusReport(BaseModel):
    """Paths grouped by status, plus per-path problems.

    Attributes:
        groups: Paths for each status in the order they were classified.
        errors: Messages for arguments that could not be reported.
    """

    groups: Dict[Status, List[Path]] = Field(
        default_factory=lambda: {status: [] for status in REPORT_ORDER}
    )
    errors: List[str] = Field(default_factory=list)

    def add(self, path: Path, status: Status) -> None:
        self.groups[status].append(path)

    def entries(self) -> Iterator[Tuple[Status, Path]]:
        """Yield (status, path) pairs grouped in report order."""
        for status in REPORT_ORDER:
            for path in self.groups[status]:
                yield status, path

    def counts(self) -> Dict[str, int]:
        return {status.label: len(self.groups[status]) for status in REPORT_ORDER}


class TagOutcome(BaseModel):
    """Result of tagging a single path.

    Attributes:
        path: Absolute path that was tagged.
        file: File record after the operation.
        created: Whether the path was registered by this operation.
        updated: Whether a changed modification time refreshed the fingerprint.
        duplicates: Previously indexed files sharing the new file's fingerprint.
        new_tags: Tag names created by this operation.
        applied_tags: Tag names newly associated with the file.
        unchanged_tags: Tag names the file already carried.
    """

    path: Path
    file: File
    created: bool = False
    updated: bool = False
    duplicates: List[File] = Field(default_factory=list)
    new_tags: List[str] = Field(default_factory=list)
    applied_tags: List[str] = Field(default_factory=list)
    unchanged_tags: List[str] = Field(default_factory=list)


class TagFailure(BaseModel):
    """A path whose tagging was abandoned."""

    path: Path
    reason: str


class BatchOutcome(BaseModel):
    """Results of tagging several paths with the same tags."""

    outcomes: List[TagOutcome] = Field(default_factory=list)
    failures: List[TagFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class DuplicateSet(BaseModel):
    """Indexed files sharing one fingerprint."""

    fingerprint: str
    files: List[File]


class ProbeMatch(BaseModel):
    """Indexed duplicates of one candidate path."""

    path: Path
    duplicates: List[File]


class ProbeResult(BaseModel):
    """Outcome of checking candidate paths against the index.

    Attributes:
        matches: Candidates with at least one indexed duplicate, in probe order.
        warnings: Per-path problems; candidates listed here were skipped.
        candidates: Number of candidates fingerprinted after expansion.
    """

    matches: List[ProbeMatch] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    candidates: int = 0

    @property
    def partial(self) -> bool:
        return bool(self.warnings)


__all__ = [
    "Status",
    "REPORT_ORDER",
    "StatusReport",
    "TagOutcome",
    "TagFailure",
    "BatchOutcome",
    "DuplicateSet",
    "ProbeMatch",
    "ProbeResult",
]
