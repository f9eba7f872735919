"""Configuration management for pathtag."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import PathtagConfig
from .resolver import ENV_PREFIX, flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.pathtag/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # pathtag configuration file
    # Manage with `pathtag config set KEY --value VALUE` or `pathtag config edit`.
    """
)


class ConfigManager:
    """Read and write the YAML configuration file and apply override precedence."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> PathtagConfig:
        """Return the effective configuration.

        Args:
            cli_overrides: Dotted-key overrides collected from command-line options.
            include_env: Whether `PATHTAG__*` environment variables participate.
            ensure_file: Create the configuration file with defaults when absent.
            env_overrides: Explicit environment mapping used instead of `os.environ`.

        Raises:
            ConfigError: If the file cannot be parsed or values are invalid.
        """
        if ensure_file:
            self.ensure_exists()

        env_data: dict[str, Any] | None = None
        if include_env:
            env_data = self._extract_env(env_overrides if env_overrides is not None else self._env)

        return resolve_with_precedence(
            defaults=PathtagConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_data or None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored on disk."""
        return self._read_file()

    def save(self, config: PathtagConfig | Mapping[str, Any]) -> None:
        """Write configuration data to disk with the standard header."""
        if isinstance(config, PathtagConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create the configuration file with defaults if it does not exist yet."""
        if not self._config_path.exists():
            self._write_file(PathtagConfig().model_dump(mode="python"))
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    # Internal helpers -------------------------------------------------

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(dict(data), sort_keys=False)
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
            if not segments:
                continue
            try:
                value: Any = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                value = raw_value
            overrides[".".join(segments)] = value
        return overrides


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "PathtagConfig",
    "resolve_with_precedence",
    "flatten_for_env",
    "ConfigError",
]
