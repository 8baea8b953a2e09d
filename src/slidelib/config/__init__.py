"""Configuration management for SlideLib."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import SlideLibConfig
from .resolver import ENV_PREFIX, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.slidelib/config.yaml")
_CONFIG_HEADER = (
    "# SlideLib configuration file\n"
    "# Generated automatically; manage via `slidelib config set KEY --value VALUE`.\n"
)


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Translate ``SLIDELIB__SECTION__KEY`` variables into dotted override keys.

    Values are parsed as YAML so numbers, booleans, and lists keep their types;
    anything YAML rejects is passed through as a plain string.
    """
    overrides: dict[str, Any] = {}
    for name, raw_value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in name[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value: Any = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        overrides[".".join(segments)] = value
    return overrides


class ConfigManager:
    """Read and write ``config.yaml`` and resolve it against defaults and overrides."""

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> SlideLibConfig:
        """Resolve the effective configuration.

        Args:
            cli_overrides: Dotted-key overrides with the highest precedence.
            include_env: Whether ``SLIDELIB__`` variables participate.
            env: Environment to read instead of ``os.environ``.

        Returns:
            SlideLibConfig: Validated configuration.

        Raises:
            ConfigError: If the file is unreadable or a value fails validation.
        """
        self.ensure_exists()
        environment = None
        if include_env:
            environment = env_overrides(os.environ if env is None else env)
        return resolve_with_precedence(
            defaults=SlideLibConfig(),
            file_overrides=self.file_overrides(),
            env_overrides=environment or None,
            cli_overrides=cli_overrides,
        )

    def read_text(self) -> str:
        """Return the raw file contents, or an empty string when it is missing."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def file_overrides(self) -> dict[str, Any]:
        """Return the mapping stored on disk without applying defaults."""
        text = self.read_text()
        try:
            raw = yaml.safe_load(text) if text else None
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def save(self, data: SlideLibConfig | Mapping[str, Any]) -> None:
        """Write ``data`` below the generated header and a fresh timestamp."""
        if isinstance(data, SlideLibConfig):
            data = data.model_dump(mode="json")
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(dict(data), sort_keys=False)
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )

    def ensure_exists(self) -> Path:
        """Write the default configuration if no file exists yet."""
        if not self._config_path.exists():
            self.save(SlideLibConfig())
        return self._config_path


__all__ = [
    "ConfigManager",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SlideLibConfig",
    "env_overrides",
    "resolve_with_precedence",
]
