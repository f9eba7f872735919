"""Path classification and status report tests."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from pathtag.fingerprint import FingerprintEngine
from pathtag.reconcile import LocalFilesystem, PathClassifier, Status, Tagger
from pathtag.state import EntityStore


def _store(tmp_path: Path) -> EntityStore:
    return EntityStore(tmp_path / "db" / "tags.db")


def _tag(store: EntityStore, path: Path, *names: str) -> None:
    with store.begin() as tx:
        Tagger(tx, FingerprintEngine()).tag(path, list(names or ("music",)))


def _bump_mtime(path: Path, seconds: int = 10) -> None:
    info = path.stat()
    os.utime(path, (info.st_atime, info.st_mtime + seconds))


class DeniedFilesystem(LocalFilesystem):
    """Filesystem stub refusing access to one path."""

    def __init__(self, denied: Path) -> None:
        self.denied = str(denied)

    def stat(self, path):
        if os.fspath(path) == self.denied:
            raise PermissionError(13, "Permission denied", self.denied)
        return super().stat(path)


def test_tagged_then_modified_then_missing(tmp_path: Path) -> None:
    """Walk one file through the TAGGED, MODIFIED and MISSING states."""
    store = _store(tmp_path)
    target = tmp_path / "a.txt"
    target.write_text("tune", encoding="utf-8")
    _tag(store, target)

    with store.begin() as tx:
        assert PathClassifier(tx).classify(target) is Status.TAGGED

    _bump_mtime(target)
    with store.begin() as tx:
        assert PathClassifier(tx).classify(target) is Status.MODIFIED

    target.unlink()
    with store.begin() as tx:
        assert PathClassifier(tx).classify(target) is Status.MISSING


def test_unregistered_file_is_untagged(tmp_path: Path) -> None:
    store = _store(tmp_path)
    target = tmp_path / "plain.txt"
    target.write_text("x", encoding="utf-8")

    with store.begin() as tx:
        assert PathClassifier(tx).classify(target) is Status.UNTAGGED
        assert PathClassifier(tx).classify(tmp_path / "absent.txt") is Status.UNTAGGED


def test_directory_with_tagged_descendant_is_nested(tmp_path: Path) -> None:
    store = _store(tmp_path)
    deep = tmp_path / "tree" / "a" / "b"
    deep.mkdir(parents=True)
    (deep / "song.mp3").write_bytes(b"la")
    _tag(store, deep / "song.mp3")

    with store.begin() as tx:
        classifier = PathClassifier(tx)
        assert classifier.classify(tmp_path / "tree") is Status.NESTED
        assert classifier.classify(tmp_path / "tree" / "a") is Status.NESTED


def test_directory_whose_only_descendant_is_missing_is_untagged(tmp_path: Path) -> None:
    store = _store(tmp_path)
    folder = tmp_path / "tree"
    folder.mkdir()
    target = folder / "gone.txt"
    target.write_text("x", encoding="utf-8")
    _tag(store, target)
    target.unlink()

    with store.begin() as tx:
        assert PathClassifier(tx).classify(folder) is Status.UNTAGGED


def test_nested_detection_survives_symlink_cycles(tmp_path: Path) -> None:
    store = _store(tmp_path)
    folder = tmp_path / "tree"
    folder.mkdir()
    (folder / "loop").symlink_to(folder, target_is_directory=True)
    (folder / "plain.txt").write_text("x", encoding="utf-8")

    with store.begin() as tx:
        tx.add_file(str(folder / "ghost.txt"), "", datetime.now(timezone.utc))
        assert PathClassifier(tx).classify(folder) is Status.UNTAGGED


def test_permission_error_propagates(tmp_path: Path) -> None:
    store = _store(tmp_path)
    target = tmp_path / "secret.txt"
    target.write_text("x", encoding="utf-8")
    _tag(store, target)

    with store.begin() as tx:
        classifier = PathClassifier(tx, DeniedFilesystem(target))
        with pytest.raises(PermissionError):
            classifier.classify(target)


def test_report_expands_untagged_directory(tmp_path: Path) -> None:
    """Ensure directory arguments list their entries plus missing descendants."""
    store = _store(tmp_path)
    folder = tmp_path / "music"
    (folder / "album").mkdir(parents=True)
    (folder / "a.mp3").write_bytes(b"a")
    (folder / "b.mp3").write_bytes(b"b")
    (folder / "album" / "c.mp3").write_bytes(b"c")
    (folder / "gone.mp3").write_bytes(b"g")
    for name in ("a.mp3", "album/c.mp3", "gone.mp3"):
        _tag(store, folder / name)
    (folder / "gone.mp3").unlink()

    with store.begin() as tx:
        report = PathClassifier(tx).report([folder])

    assert [(status, path.name) for status, path in report.entries()] == [
        (Status.TAGGED, "a.mp3"),
        (Status.NESTED, "album"),
        (Status.MISSING, "gone.mp3"),
        (Status.UNTAGGED, "b.mp3"),
    ]
    assert report.errors == []


def test_report_show_directory_lists_argument_itself(tmp_path: Path) -> None:
    store = _store(tmp_path)
    folder = tmp_path / "music"
    folder.mkdir()
    (folder / "a.mp3").write_bytes(b"a")
    _tag(store, folder / "a.mp3")

    with store.begin() as tx:
        report = PathClassifier(tx).report([folder], show_directory=True)

    assert list(report.entries()) == [(Status.NESTED, folder)]


def test_report_file_argument_reports_itself(tmp_path: Path) -> None:
    store = _store(tmp_path)
    target = tmp_path / "a.txt"
    target.write_text("x", encoding="utf-8")
    _tag(store, target)
    target.unlink()

    with store.begin() as tx:
        report = PathClassifier(tx).report([target])

    assert list(report.entries()) == [(Status.MISSING, target)]


def test_report_records_error_for_unknown_path(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with store.begin() as tx:
        report = PathClassifier(tx).report(["does-not-exist"])

    assert list(report.entries()) == []
    assert report.errors == ["does-not-exist: no such file"]


def test_report_defaults_to_working_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = _store(tmp_path)
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / "one.txt").write_text("1", encoding="utf-8")
    monkeypatch.chdir(workdir)

    with store.begin() as tx:
        report = PathClassifier(tx).report([])

    assert report.counts()["untagged"] == 1
    assert list(report.entries()) == [(Status.UNTAGGED, workdir / "one.txt")]


def test_report_lists_missing_files_of_deleted_directory(tmp_path: Path) -> None:
    store = _store(tmp_path)
    album = tmp_path / "album"
    album.mkdir()
    target = album / "a.mp3"
    target.write_bytes(b"a")
    _tag(store, target)
    target.unlink()
    album.rmdir()

    with store.begin() as tx:
        report = PathClassifier(tx).report([album])

    assert list(report.entries()) == [(Status.MISSING, target)]
    assert report.errors == []
