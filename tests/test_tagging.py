"""Tagging workflow tests."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

import pytest

from pathtag.fingerprint import FingerprintEngine
from pathtag.reconcile import TagNameError, Tagger, list_files, validate_tag_name
from pathtag.reconcile.errors import UnknownTagError
from pathtag.state import EntityStore


def _store(tmp_path: Path) -> EntityStore:
    return EntityStore(tmp_path / "db" / "tags.db")


def _write(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.mark.parametrize("name", ["", "foo=bar", "a,b", "two words", "-flag"])
def test_validate_tag_name_rejects_malformed(name: str) -> None:
    with pytest.raises(TagNameError):
        validate_tag_name(name)


def test_invalid_tag_fails_before_any_write(tmp_path: Path) -> None:
    store = _store(tmp_path)
    target = _write(tmp_path / "a.txt", b"x")

    with store.begin() as tx:
        with pytest.raises(TagNameError):
            Tagger(tx, FingerprintEngine()).tag(target, ["music", "foo=bar"])
        assert tx.files() == []
        assert tx.tag_by_name("music") is None


def test_first_tag_registers_file_and_creates_tag(tmp_path: Path) -> None:
    store = _store(tmp_path)
    target = _write(tmp_path / "a.txt", b"tune")

    with store.begin() as tx:
        outcome = Tagger(tx, FingerprintEngine()).tag(target, ["music"])

    assert outcome.created
    assert outcome.new_tags == ["music"]
    assert outcome.applied_tags == ["music"]
    assert outcome.file.path == str(target)
    assert outcome.file.fingerprint == hashlib.sha256(b"tune").hexdigest()


def test_tagging_twice_keeps_one_association(tmp_path: Path) -> None:
    store = _store(tmp_path)
    target = _write(tmp_path / "a.txt", b"tune")

    with store.begin() as tx:
        Tagger(tx, FingerprintEngine()).tag(target, ["music"])
    with store.begin() as tx:
        outcome = Tagger(tx, FingerprintEngine()).tag(target, ["music", "music"])
        associations = tx.file_tags_by_file(outcome.file.id)

    assert not outcome.created
    assert outcome.new_tags == []
    assert outcome.unchanged_tags == ["music"]
    assert len(associations) == 1


def test_modified_file_gets_fresh_fingerprint(tmp_path: Path) -> None:
    store = _store(tmp_path)
    target = _write(tmp_path / "a.txt", b"first")

    with store.begin() as tx:
        Tagger(tx, FingerprintEngine()).tag(target, ["draft"])

    target.write_bytes(b"second")
    info = target.stat()
    os.utime(target, (info.st_atime, info.st_mtime + 10))

    with store.begin() as tx:
        outcome = Tagger(tx, FingerprintEngine()).tag(target, ["final"])
        stored = tx.file_by_path(str(target))

    assert outcome.updated
    assert stored is not None
    assert stored.fingerprint == hashlib.sha256(b"second").hexdigest()
    assert int(stored.mod_time.timestamp()) == int(target.stat().st_mtime)


def test_duplicate_content_is_reported(tmp_path: Path) -> None:
    store = _store(tmp_path)
    first = _write(tmp_path / "a.mp3", b"tune")
    second = _write(tmp_path / "b.mp3", b"tune")

    with store.begin() as tx:
        tagger = Tagger(tx, FingerprintEngine())
        tagger.tag(first, ["music"])
        outcome = tagger.tag(second, ["music"])

    assert [record.path for record in outcome.duplicates] == [str(first)]


def test_batch_rolls_back_only_failing_paths(tmp_path: Path) -> None:
    """Ensure a conflicting path is reported while the rest of the batch is kept."""
    store = _store(tmp_path)
    folder = tmp_path / "dir"
    inner = _write(folder / "x.txt", b"x")
    loose = _write(tmp_path / "y.txt", b"y")

    with store.begin() as tx:
        Tagger(tx, FingerprintEngine()).tag(inner, ["doc"])

    with store.begin() as tx:
        batch = Tagger(tx, FingerprintEngine()).tag_many(
            [folder, tmp_path / "absent.txt", loose], ["archive"]
        )

    assert not batch.ok
    assert [outcome.path for outcome in batch.outcomes] == [loose]
    assert [failure.path for failure in batch.failures] == [folder, tmp_path / "absent.txt"]
    assert "contains tagged items" in batch.failures[0].reason
    assert batch.failures[1].reason.endswith("no such file")

    with store.begin(create=False) as tx:
        assert tx.file_by_path(str(folder)) is None
        assert [record.path for record in list_files(tx, ["archive"])] == [str(loose)]


def test_list_files_intersects_tags(tmp_path: Path) -> None:
    store = _store(tmp_path)
    first = _write(tmp_path / "a.mp3", b"a")
    second = _write(tmp_path / "b.mp3", b"b")

    with store.begin() as tx:
        tagger = Tagger(tx, FingerprintEngine())
        tagger.tag(first, ["music", "favourite"])
        tagger.tag(second, ["music"])

    with store.begin(create=False) as tx:
        assert [record.path for record in list_files(tx, ["music", "favourite"])] == [str(first)]
        assert len(list_files(tx)) == 2
        with pytest.raises(UnknownTagError):
            list_files(tx, ["jazz"])


def test_list_files_excludes_tags(tmp_path: Path) -> None:
    store = _store(tmp_path)
    first = _write(tmp_path / "a.mp3", b"a")
    second = _write(tmp_path / "b.ogg", b"b")

    with store.begin() as tx:
        tagger = Tagger(tx, FingerprintEngine())
        tagger.tag(first, ["music", "mp3"])
        tagger.tag(second, ["music"])

    with store.begin(create=False) as tx:
        assert [record.path for record in list_files(tx, ["music"], ["mp3"])] == [str(second)]
        with pytest.raises(UnknownTagError):
            list_files(tx, ["music"], ["jazz"])
