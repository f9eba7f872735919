"""Records persisted by the entity store."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class File(BaseModel):
    """An indexed filesystem path.

    Attributes:
        id: Store identity.
        path: Absolute path; unique across the index.
        fingerprint: Content identity, empty when none could be derived.
        mod_time: Modification time (UTC, whole seconds) observed when the
            fingerprint was last recorded.
    """

    id: int
    path: str
    fingerprint: str = ""
    mod_time: datetime


class Tag(BaseModel):
    """A named label."""

    id: int
    name: str


class FileTag(BaseModel):
    """Association recording that a file carries a tag."""

    file_id: int
    tag_id: int


__all__ = ["File", "Tag", "FileTag"]
