"""Fingerprint engine tests."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from pathtag.config.models import FingerprintSettings
from pathtag.fingerprint import EMPTY_FINGERPRINT, FingerprintEngine
from pathtag.fingerprint.engine import FRAGMENT_SIZE, SPARSE_THRESHOLD


def test_small_file_uses_full_digest(tmp_path: Path) -> None:
    target = tmp_path / "a.txt"
    target.write_bytes(b"hello world")

    engine = FingerprintEngine("dynamic:sha256")

    assert engine.fingerprint(target) == hashlib.sha256(b"hello world").hexdigest()


@pytest.mark.parametrize("algorithm", ["sha1", "md5", "blake2b"])
def test_named_algorithms_match_hashlib(tmp_path: Path, algorithm: str) -> None:
    target = tmp_path / "a.bin"
    target.write_bytes(b"payload")

    engine = FingerprintEngine(algorithm)

    assert engine.fingerprint(target) == hashlib.new(algorithm, b"payload").hexdigest()


def test_empty_file_has_empty_fingerprint(tmp_path: Path) -> None:
    target = tmp_path / "empty"
    target.touch()

    assert FingerprintEngine().fingerprint(target) == EMPTY_FINGERPRINT


def test_none_algorithm_yields_empty_fingerprint(tmp_path: Path) -> None:
    target = tmp_path / "a.txt"
    target.write_bytes(b"content")

    assert FingerprintEngine("none").fingerprint(target) == EMPTY_FINGERPRINT


def test_dynamic_algorithm_samples_large_files(tmp_path: Path) -> None:
    size = SPARSE_THRESHOLD + FRAGMENT_SIZE
    data = bytes(index % 251 for index in range(size))
    target = tmp_path / "large.bin"
    target.write_bytes(data)

    sparse = FingerprintEngine("dynamic:sha256").fingerprint(target)
    full = FingerprintEngine("sha256").fingerprint(target)

    assert full == hashlib.sha256(data).hexdigest()
    assert sparse != full

    # Bytes outside the sampled fragments do not change the sparse fingerprint.
    changed = bytearray(data)
    changed[FRAGMENT_SIZE + 10] ^= 0xFF
    target.write_bytes(bytes(changed))
    assert FingerprintEngine("dynamic:sha256").fingerprint(target) == sparse
    assert FingerprintEngine("sha256").fingerprint(target) != full


def test_directory_none_is_empty(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_bytes(b"x")

    assert FingerprintEngine().fingerprint(tmp_path) == EMPTY_FINGERPRINT


def test_directory_sum_sizes_totals_nested_files(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_bytes(b"abc")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.txt").write_bytes(b"defgh")

    engine = FingerprintEngine(directory_algorithm="sum_sizes")

    assert engine.fingerprint(tmp_path) == "8"


def test_directory_sha256_depends_on_names_and_content(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    for root in (first, second):
        (root / "sub").mkdir(parents=True)
        (root / "a.txt").write_bytes(b"alpha")
        (root / "sub" / "b.txt").write_bytes(b"beta")

    engine = FingerprintEngine(directory_algorithm="sha256")
    assert engine.fingerprint(first) == engine.fingerprint(second)

    (second / "sub" / "b.txt").rename(second / "sub" / "c.txt")
    assert engine.fingerprint(first) != engine.fingerprint(second)


def test_empty_directory_has_empty_fingerprint(tmp_path: Path) -> None:
    engine = FingerprintEngine(directory_algorithm="sha256")

    assert engine.fingerprint(tmp_path) == EMPTY_FINGERPRINT


def test_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        FingerprintEngine().fingerprint(tmp_path / "absent")


def test_unknown_algorithm_rejected() -> None:
    with pytest.raises(ValueError):
        FingerprintEngine("crc32")
    with pytest.raises(ValueError):
        FingerprintEngine(directory_algorithm="md5")


def test_from_settings_uses_configured_algorithms() -> None:
    engine = FingerprintEngine.from_settings(
        FingerprintSettings(file_algorithm="md5", directory_algorithm="sum_sizes")
    )

    assert engine.file_algorithm == "md5"
    assert engine.directory_algorithm == "sum_sizes"
