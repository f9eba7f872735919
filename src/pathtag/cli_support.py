"""Rendering helpers shared by pathtag CLI commands.

Functions here turn structured outcomes into output lines or JSON payloads;
they never touch the store or the filesystem beyond resolving the working
directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable

from pathtag.reconcile import BatchOutcome, DuplicateSet, ProbeResult, StatusReport
from pathtag.state import File


def display_path(path: str | os.PathLike[str], cwd: Path | None = None) -> str:
    """Return `path` relative to the working directory when it lies beneath it.

    Args:
        path: Absolute path to display.
        cwd: Directory to relativize against; defaults to the current directory.

    Returns:
        str: Relative path, `.` for the directory itself, or the absolute path.
    """
    base = cwd if cwd is not None else Path.cwd()
    absolute = Path(path)
    try:
        relative = absolute.relative_to(base)
    except ValueError:
        return str(absolute)
    return str(relative) if relative.parts else "."


def status_lines(report: StatusReport, cwd: Path | None = None) -> list[str]:
    """Render a status report as `<symbol> <path>` lines in report order."""
    return [f"{status.symbol} {display_path(path, cwd)}" for status, path in report.entries()]


def status_payload(report: StatusReport, cwd: Path | None = None) -> dict[str, Any]:
    """Return the JSON payload describing a status report."""
    return {
        "counts": report.counts(),
        "entries": [
            {
                "status": status.label,
                "symbol": status.symbol,
                "path": display_path(path, cwd),
            }
            for status, path in report.entries()
        ],
        "errors": list(report.errors),
    }


def duplicate_set_lines(sets: Iterable[DuplicateSet], cwd: Path | None = None) -> list[str]:
    """Render duplicate sets separated by blank lines."""
    lines: list[str] = []
    for index, duplicate_set in enumerate(sets):
        if index:
            lines.append("")
        lines.append(f"Set of {len(duplicate_set.files)} duplicates:")
        lines.extend(f"  {display_path(record.path, cwd)}" for record in duplicate_set.files)
    return lines


def probe_lines(result: ProbeResult, cwd: Path | None = None) -> list[str]:
    """Render probe matches.

    With several candidates, each candidate heads its own indented block;
    with one candidate its duplicates are listed flat.
    """
    lines: list[str] = []
    grouped = result.candidates > 1
    for index, match in enumerate(result.matches):
        if grouped:
            if index:
                lines.append("")
            lines.append(f"{match.path}:")
            lines.extend(f"  {display_path(record.path, cwd)}" for record in match.duplicates)
        else:
            lines.extend(display_path(record.path, cwd) for record in match.duplicates)
    return lines


def duplicates_payload(
    sets: list[DuplicateSet] | None = None,
    result: ProbeResult | None = None,
    cwd: Path | None = None,
) -> dict[str, Any]:
    """Return the JSON payload for either duplicate mode."""
    if result is None:
        return {
            "sets": [
                {
                    "fingerprint": duplicate_set.fingerprint,
                    "files": [display_path(record.path, cwd) for record in duplicate_set.files],
                }
                for duplicate_set in sets or []
            ]
        }
    return {
        "matches": [
            {
                "path": str(match.path),
                "duplicates": [display_path(record.path, cwd) for record in match.duplicates],
            }
            for match in result.matches
        ],
        "warnings": list(result.warnings),
    }


def tag_notices(batch: BatchOutcome, cwd: Path | None = None) -> list[str]:
    """Return informational notices for a tagging batch (new tags, duplicate content)."""
    notices: list[str] = []
    announced: set[str] = set()
    for outcome in batch.outcomes:
        for name in outcome.new_tags:
            if name not in announced:
                announced.add(name)
                notices.append(f"New tag '{name}'.")
        if outcome.duplicates:
            notices.append(
                f"{display_path(outcome.path, cwd)}: file is a duplicate of previously tagged files."
            )
            notices.extend(f"  {display_path(record.path, cwd)}" for record in outcome.duplicates)
    return notices


def file_lines(files: Iterable[File], cwd: Path | None = None) -> list[str]:
    """Render indexed files as sorted display paths."""
    return sorted(display_path(record.path, cwd) for record in files)


__all__ = [
    "display_path",
    "status_lines",
    "status_payload",
    "duplicate_set_lines",
    "probe_lines",
    "duplicates_payload",
    "tag_notices",
    "file_lines",
]
