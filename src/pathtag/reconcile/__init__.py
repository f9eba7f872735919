"""Reconciliation engine: classification, hierarchy rules, duplicates and tagging."""

from .classifier import PathClassifier
from .duplicates import DuplicateDetector
from .errors import HierarchyConflictError, ReconcileError, TagNameError, UnknownTagError
from .filesystem import FileStat, LocalFilesystem, absolute_path
from .hierarchy import HierarchyValidator
from .listing import list_files
from .models import (
    REPORT_ORDER,
    BatchOutcome,
    DuplicateSet,
    ProbeMatch,
    ProbeResult,
    Status,
    StatusReport,
    TagFailure,
    TagOutcome,
)
from .tagging import Tagger, validate_tag_name

__all__ = [
    "PathClassifier",
    "DuplicateDetector",
    "HierarchyValidator",
    "Tagger",
    "validate_tag_name",
    "list_files",
    "FileStat",
    "LocalFilesystem",
    "absolute_path",
    "Status",
    "REPORT_ORDER",
    "StatusReport",
    "TagOutcome",
    "TagFailure",
    "BatchOutcome",
    "DuplicateSet",
    "ProbeMatch",
    "ProbeResult",
    "ReconcileError",
    "HierarchyConflictError",
    "TagNameError",
    "UnknownTagError",
]
