"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from pathtag.config import (
    ConfigError,
    ConfigManager,
    PathtagConfig,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".pathtag" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "pathtag configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, PathtagConfig)
    assert config.fingerprint.file_algorithm == "dynamic:sha256"
    assert config.fingerprint.directory_algorithm == "none"


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.save(
        {"database": {"path": "/srv/tags.db"}, "fingerprint": {"file_algorithm": "md5"}}
    )

    env = {
        "PATHTAG__FINGERPRINT__FILE_ALGORITHM": "sha1",
        "PATHTAG__STATUS__SHOW_DIRECTORY_DEFAULT": "true",
    }
    cli = {"fingerprint.file_algorithm": "blake2b"}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.database.path == "/srv/tags.db"
    assert config.status.show_directory_default is True
    # CLI overrides take precedence over environment
    assert config.fingerprint.file_algorithm == "blake2b"


def test_environment_beats_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"logging": {"level": "INFO"}})

    config = manager.load(env_overrides={"PATHTAG__LOGGING__LEVEL": "DEBUG"})

    assert config.logging.level == "DEBUG"


def test_load_without_env_ignores_process_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    monkeypatch.setenv("PATHTAG__DATABASE__PATH", "/elsewhere.db")

    config = ConfigManager().load(include_env=False)

    assert config.database.path == "~/.pathtag/default.db"
    assert manager.config_path.exists()


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(PathtagConfig())

    assert flat["PATHTAG__FINGERPRINT__FILE_ALGORITHM"] == "dynamic:sha256"
    assert flat["PATHTAG__LOGGING__BACKUP_COUNT"] == "3"
    assert flat["PATHTAG__STATUS__SHOW_DIRECTORY_DEFAULT"] == "false"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=PathtagConfig(),
            file_overrides={"fingerprint": {"file_algorithm": "crc32"}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=PathtagConfig(),
            cli_overrides={"database.location": "/tmp/x.db"},
        )
