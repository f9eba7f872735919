"""Content fingerprints used to recognise files across renames and copies."""

from .engine import (
    DIRECTORY_ALGORITHMS,
    EMPTY_FINGERPRINT,
    FILE_ALGORITHMS,
    FingerprintEngine,
)

__all__ = [
    "DIRECTORY_ALGORITHMS",
    "EMPTY_FINGERPRINT",
    "FILE_ALGORITHMS",
    "FingerprintEngine",
]
