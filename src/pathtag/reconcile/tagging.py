"""Apply tags to paths, registering new files on first use."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Sequence

from pathtag.fingerprint import EMPTY_FINGERPRINT, FingerprintEngine
from pathtag.state import File, Transaction

from .errors import HierarchyConflictError, TagNameError
from .filesystem import LocalFilesystem, absolute_path, same_second
from .hierarchy import HierarchyValidator
from .models import BatchOutcome, TagFailure, TagOutcome

LOGGER = logging.getLogger(__name__)


def validate_tag_name(name: str) -> None:
    """Raise `TagNameError` unless `name` is usable as a tag."""
    if not name:
        raise TagNameError("Tag names cannot be empty.", name=name)
    if "," in name:
        raise TagNameError("Tag names cannot contain commas.", name=name)
    if "=" in name:
        raise TagNameError("Tag names cannot contain '='.", name=name)
    if " " in name:
        raise TagNameError("Tag names cannot contain spaces.", name=name)
    if name.startswith("-"):
        raise TagNameError("Tag names cannot start with '-'.", name=name)


def _validated_names(tag_names: Iterable[str]) -> list[str]:
    names = list(dict.fromkeys(tag_names))
    if not names:
        raise TagNameError("At least one tag must be specified.", name="")
    for name in names:
        validate_tag_name(name)
    return names


class Tagger:
    """Record tags against paths inside one store transaction.

    Nothing is printed here; callers render the returned outcomes.
    """

    def __init__(
        self,
        tx: Transaction,
        engine: FingerprintEngine,
        filesystem: LocalFilesystem | None = None,
    ) -> None:
        self._tx = tx
        self._engine = engine
        self._filesystem = filesystem or LocalFilesystem()
        self._validator = HierarchyValidator(tx, self._filesystem)

    def tag(self, path: str | os.PathLike[str], tag_names: Sequence[str]) -> TagOutcome:
        """Apply tags to a single path.

        Args:
            path: File or directory to tag.
            tag_names: Tags to apply; duplicates are ignored.

        Returns:
            TagOutcome: What changed in the index.

        Raises:
            TagNameError: If any tag name is malformed. Raised before any write.
            HierarchyConflictError: If registering the path would nest tagged entries.
            FileNotFoundError: If the path does not exist.
        """
        names = _validated_names(tag_names)
        return self._tag_path(path, names)

    def tag_many(
        self, paths: Iterable[str | os.PathLike[str]], tag_names: Sequence[str]
    ) -> BatchOutcome:
        """Apply the same tags to several paths.

        Each path is processed in its own savepoint, so a path that fails is
        rolled back and reported while the others are still tagged.

        Raises:
            TagNameError: If any tag name is malformed. Raised before any path
                is processed.
        """
        names = _validated_names(tag_names)
        batch = BatchOutcome()
        for path in paths:
            try:
                with self._tx.savepoint():
                    outcome = self._tag_path(path, names)
            except HierarchyConflictError as exc:
                batch.failures.append(TagFailure(path=Path(path), reason=str(exc)))
            except FileNotFoundError:
                batch.failures.append(TagFailure(path=Path(path), reason=f"{path}: no such file"))
            except PermissionError:
                batch.failures.append(
                    TagFailure(path=Path(path), reason=f"{path}: permission denied")
                )
            else:
                batch.outcomes.append(outcome)
        if batch.failures:
            total = len(batch.failures) + len(batch.outcomes)
            LOGGER.info("%d of %d paths could not be tagged", len(batch.failures), total)
        return batch

    def _tag_path(self, path: str | os.PathLike[str], names: list[str]) -> TagOutcome:
        absolute = absolute_path(path)
        info = self._filesystem.stat(absolute)
        record = self._tx.file_by_path(absolute)
        created = updated = False
        duplicates: list[File] = []

        if record is None:
            self._validator.validate_labelable(absolute)
            fingerprint = self._engine.fingerprint(Path(absolute))
            if fingerprint != EMPTY_FINGERPRINT:
                duplicates = self._tx.files_by_fingerprint(fingerprint)
            record = self._tx.add_file(absolute, fingerprint, info.mod_time)
            created = True
        elif not same_second(record.mod_time, info.mod_time):
            fingerprint = self._engine.fingerprint(Path(absolute))
            self._tx.update_file(record.id, record.path, fingerprint, info.mod_time)
            record = record.model_copy(update={"fingerprint": fingerprint, "mod_time": info.mod_time})
            updated = True

        outcome = TagOutcome(
            path=Path(absolute),
            file=record,
            created=created,
            updated=updated,
            duplicates=duplicates,
        )
        for name in names:
            self._apply_tag(record, name, outcome)
        return outcome

    def _apply_tag(self, record: File, name: str, outcome: TagOutcome) -> None:
        tag = self._tx.tag_by_name(name)
        if tag is None:
            tag = self._tx.add_tag(name)
            outcome.new_tags.append(name)

        if self._tx.file_tag(record.id, tag.id) is None:
            self._tx.add_file_tag(record.id, tag.id)
            outcome.applied_tags.append(name)
        else:
            outcome.unchanged_tags.append(name)


__all__ = ["Tagger", "validate_tag_name"]
