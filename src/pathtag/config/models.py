"""Configuration models describing pathtag settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FileAlgorithm = Literal[
    "dynamic:sha256",
    "dynamic:sha1",
    "dynamic:md5",
    "sha256",
    "sha1",
    "md5",
    "blake2b",
    "none",
]
DirectoryAlgorithm = Literal["none", "sum_sizes", "sha256"]


class PathtagBaseModel(BaseModel):
    """Shared configuration for pathtag settings models."""

    model_config = ConfigDict(extra="forbid")


class DatabaseSettings(PathtagBaseModel):
    """Location of the tag index.

    Attributes:
        path: SQLite database file; `~` is expanded when the store is opened.
    """

    path: str = "~/.pathtag/default.db"


class FingerprintSettings(PathtagBaseModel):
    """Algorithms used to derive content identities.

    Attributes:
        file_algorithm: Digest strategy for regular files. The `dynamic:` variants
            sample large files instead of reading them completely.
        directory_algorithm: Strategy for directories; `none` yields an empty
            fingerprint so directories never participate in duplicate detection.
    """

    file_algorithm: FileAlgorithm = "dynamic:sha256"
    directory_algorithm: DirectoryAlgorithm = "none"


class StatusOptions(PathtagBaseModel):
    """Defaults for the `status` command.

    Attributes:
        show_directory_default: Report directory arguments themselves rather than
            their entries when `--directory` is not given.
    """

    show_directory_default: bool = False


class LoggingSettings(PathtagBaseModel):
    """Operations log configuration.

    Attributes:
        level: Level applied to the `pathtag` logger.
        file: Rotating log file location.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of rotated log files to retain.
    """

    level: str = "WARNING"
    file: str = "~/.pathtag/pathtag.log"
    max_size_mb: int = 1
    backup_count: int = 3


class CLIOptions(PathtagBaseModel):
    """CLI presentation defaults.

    Attributes:
        quiet_default: Whether warnings are suppressed unless errors occur.
    """

    quiet_default: bool = False


class PathtagConfig(PathtagBaseModel):
    """Top-level configuration for pathtag."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    fingerprint: FingerprintSettings = Field(default_factory=FingerprintSettings)
    status: StatusOptions = Field(default_factory=StatusOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "PathtagBaseModel",
    "DatabaseSettings",
    "FingerprintSettings",
    "StatusOptions",
    "LoggingSettings",
    "CLIOptions",
    "PathtagConfig",
    "FileAlgorithm",
    "DirectoryAlgorithm",
]
