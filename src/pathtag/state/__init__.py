"""SQLite-backed persistence for indexed files, tags and their associations."""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Sequence

from .errors import MissingStoreError, StoreError
from .models import File, FileTag, Tag

LOGGER = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS file (
        id INTEGER PRIMARY KEY,
        path TEXT NOT NULL UNIQUE,
        fingerprint TEXT NOT NULL DEFAULT '',
        mod_time TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_file_fingerprint ON file(fingerprint)",
    """
    CREATE TABLE IF NOT EXISTS tag (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS file_tag (
        file_id INTEGER NOT NULL REFERENCES file(id),
        tag_id INTEGER NOT NULL REFERENCES tag(id),
        PRIMARY KEY (file_id, tag_id)
    )
    """,
)


def _normalize_mod_time(value: datetime) -> str:
    """Return the UTC, whole-second ISO representation stored for modification times."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


class EntityStore:
    """Open transactions against the tag index database."""

    def __init__(self, db_path: Path) -> None:
        """Initialize the store for a database file.

        Args:
            db_path: Location of the SQLite database. `~` is expanded.
        """
        self._db_path = Path(db_path).expanduser()

    @property
    def path(self) -> Path:
        """Return the database file location."""
        return self._db_path

    def exists(self) -> bool:
        """Return whether the database file is present on disk."""
        return self._db_path.exists()

    def begin(self, *, create: bool = True) -> "Transaction":
        """Open a connection and start a transaction.

        The returned object is a context manager: leaving the block normally
        commits, leaving it through an exception rolls back, and the connection
        is closed in both cases.

        Args:
            create: Create the database and schema when the file is absent. When
                False a missing database raises instead.

        Returns:
            Transaction: Handle exposing the store queries.

        Raises:
            MissingStoreError: If `create` is False and no database exists.
            StoreError: If the database cannot be opened or initialized.
        """
        if not self._db_path.exists():
            if not create:
                raise MissingStoreError(f"No database found at {self._db_path}")
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            connection = sqlite3.connect(str(self._db_path), isolation_level=None)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open database {self._db_path}: {exc}") from exc

        connection.row_factory = sqlite3.Row
        LOGGER.debug("opened database %s", self._db_path)
        transaction = Transaction(connection)
        try:
            transaction.begin()
            for statement in _SCHEMA:
                transaction.execute(statement)
        except StoreError:
            transaction.close()
            raise
        return transaction


class Transaction:
    """One logical unit of work against the store."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn: sqlite3.Connection | None = connection
        self._active = False
        self._savepoints = 0

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()

    # Transaction control ----------------------------------------------

    def begin(self) -> None:
        """Start a transaction if none is active."""
        if not self._active:
            self.execute("BEGIN")
            self._active = True

    def commit(self) -> None:
        """Commit the active transaction."""
        if self._active:
            self.execute("COMMIT")
            self._active = False

    def rollback(self) -> None:
        """Discard the active transaction."""
        if self._active and self._conn is not None:
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error as exc:
                raise StoreError(f"Could not roll back transaction: {exc}") from exc
            finally:
                self._active = False

    def close(self) -> None:
        """Release the connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Scope a nested unit of work that can fail without aborting the transaction.

        Changes made inside the block are discarded if it raises; the exception
        still propagates to the caller.
        """
        self._savepoints += 1
        name = f"sp_{self._savepoints}"
        self.execute(f"SAVEPOINT {name}")
        try:
            yield
        except BaseException:
            self.execute(f"ROLLBACK TO SAVEPOINT {name}")
            self.execute(f"RELEASE SAVEPOINT {name}")
            raise
        else:
            self.execute(f"RELEASE SAVEPOINT {name}")

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Run a statement, translating driver errors into `StoreError`."""
        if self._conn is None:
            raise StoreError("Transaction is closed.")
        try:
            return self._conn.execute(sql, tuple(parameters))
        except sqlite3.Error as exc:
            raise StoreError(f"Database operation failed: {exc}") from exc

    # Files ------------------------------------------------------------

    def file_by_path(self, path: str) -> File | None:
        """Return the file record stored for an absolute path, if any."""
        row = self.execute("SELECT * FROM file WHERE path = ?", (path,)).fetchone()
        return File.model_validate(dict(row)) if row else None

    def files(self) -> list[File]:
        """Return every indexed file ordered by path."""
        rows = self.execute("SELECT * FROM file ORDER BY path").fetchall()
        return [File.model_validate(dict(row)) for row in rows]

    def files_by_fingerprint(self, fingerprint: str) -> list[File]:
        """Return files recorded with the given fingerprint, ordered by path."""
        rows = self.execute(
            "SELECT * FROM file WHERE fingerprint = ? ORDER BY path", (fingerprint,)
        ).fetchall()
        return [File.model_validate(dict(row)) for row in rows]

    def files_by_directory_prefix(self, directory: str) -> list[File]:
        """Return files located anywhere beneath a directory.

        Args:
            directory: Absolute directory path. The directory's own record, if
                any, is not included.

        Returns:
            list[File]: Descendant records ordered by path.
        """
        prefix = directory if directory.endswith(os.sep) else directory + os.sep
        rows = self.execute(
            "SELECT * FROM file WHERE substr(path, 1, ?) = ? ORDER BY path",
            (len(prefix), prefix),
        ).fetchall()
        return [File.model_validate(dict(row)) for row in rows]

    def files_with_tags(
        self, tag_names: Sequence[str], exclude: Sequence[str] = ()
    ) -> list[File]:
        """Return files carrying every one of the named tags and none of the excluded ones.

        Args:
            tag_names: Tags every returned file must carry. When empty, every
                file qualifies before exclusion.
            exclude: Tags no returned file may carry.

        Returns:
            list[File]: Matching files ordered by path.
        """
        names = sorted(set(tag_names))
        excluded = sorted(set(exclude))
        clauses: list[str] = []
        parameters: list[Any] = []
        if names:
            clauses.append(
                f"""
                file.id IN (
                    SELECT file_tag.file_id FROM file_tag
                    JOIN tag ON tag.id = file_tag.tag_id
                    WHERE tag.name IN ({", ".join("?" for _ in names)})
                    GROUP BY file_tag.file_id
                    HAVING COUNT(DISTINCT tag.id) = ?
                )
                """
            )
            parameters.extend([*names, len(names)])
        if excluded:
            clauses.append(
                f"""
                file.id NOT IN (
                    SELECT file_tag.file_id FROM file_tag
                    JOIN tag ON tag.id = file_tag.tag_id
                    WHERE tag.name IN ({", ".join("?" for _ in excluded)})
                )
                """
            )
            parameters.extend(excluded)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.execute(f"SELECT * FROM file {where} ORDER BY path", parameters).fetchall()
        return [File.model_validate(dict(row)) for row in rows]

    def add_file(self, path: str, fingerprint: str, mod_time: datetime) -> File:
        """Insert a file record and return it."""
        stamp = _normalize_mod_time(mod_time)
        cursor = self.execute(
            "INSERT INTO file (path, fingerprint, mod_time) VALUES (?, ?, ?)",
            (path, fingerprint, stamp),
        )
        LOGGER.info("added file %s", path)
        return File(id=cursor.lastrowid, path=path, fingerprint=fingerprint, mod_time=stamp)

    def update_file(self, file_id: int, path: str, fingerprint: str, mod_time: datetime) -> None:
        """Replace the stored path, fingerprint and modification time of a file.

        Raises:
            StoreError: If no file with `file_id` exists.
        """
        cursor = self.execute(
            "UPDATE file SET path = ?, fingerprint = ?, mod_time = ? WHERE id = ?",
            (path, fingerprint, _normalize_mod_time(mod_time), file_id),
        )
        if cursor.rowcount == 0:
            raise StoreError(f"No file with id {file_id}.")
        LOGGER.info("updated file %s", path)

    # Tags -------------------------------------------------------------

    def tag_by_name(self, name: str) -> Tag | None:
        """Return the tag with the given name, if it exists."""
        row = self.execute("SELECT * FROM tag WHERE name = ?", (name,)).fetchone()
        return Tag.model_validate(dict(row)) if row else None

    def add_tag(self, name: str) -> Tag:
        """Create a tag and return it."""
        cursor = self.execute("INSERT INTO tag (name) VALUES (?)", (name,))
        LOGGER.info("added tag %s", name)
        return Tag(id=cursor.lastrowid, name=name)

    def file_tag(self, file_id: int, tag_id: int) -> FileTag | None:
        """Return the association between a file and a tag, if present."""
        row = self.execute(
            "SELECT * FROM file_tag WHERE file_id = ? AND tag_id = ?", (file_id, tag_id)
        ).fetchone()
        return FileTag.model_validate(dict(row)) if row else None

    def add_file_tag(self, file_id: int, tag_id: int) -> FileTag:
        """Associate a tag with a file and return the association."""
        self.execute("INSERT INTO file_tag (file_id, tag_id) VALUES (?, ?)", (file_id, tag_id))
        return FileTag(file_id=file_id, tag_id=tag_id)

    def file_tags_by_file(self, file_id: int) -> list[FileTag]:
        """Return every association recorded for a file."""
        rows = self.execute(
            "SELECT * FROM file_tag WHERE file_id = ? ORDER BY tag_id", (file_id,)
        ).fetchall()
        return [FileTag.model_validate(dict(row)) for row in rows]


__all__ = [
    "EntityStore",
    "Transaction",
    "File",
    "Tag",
    "FileTag",
    "StoreError",
    "MissingStoreError",
]
