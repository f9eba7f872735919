"""Errors raised by the reconciliation engine."""

from __future__ import annotations

from typing import Sequence


class ReconcileError(Exception):
    """Base exception for tagging and reconciliation failures."""


class HierarchyConflictError(ReconcileError):
    """Raised when labeling a path would nest tagged files and directories."""

    def __init__(self, message: str, *, path: str, conflicts: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.path = path
        self.conflicts = list(conflicts)


class TagNameError(ReconcileError):
    """Raised for a malformed tag name."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message)
        self.name = name


class UnknownTagError(ReconcileError):
    """Raised when a listing refers to a tag that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No such tag '{name}'.")
        self.name = name
