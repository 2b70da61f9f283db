"""Unified settings: CLI flags, env vars and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``PLUGREST_*`` prefix, ``__`` for nested sections
     (``PLUGREST_AUTH__PASSWORD``)
  3. TOML file: ``plugrest.toml`` found by walk-up from the working
     directory, else ``~/.config/plugrest/plugrest.toml``
  4. Code defaults: baked into the section models
"""

from __future__ import annotations

import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from plugrest.config.models import AuthConfig, ConnectionConfig

CONFIG_FILENAME = "plugrest.toml"
CONFIG_ENV_VAR = "PLUGREST_CONFIG"


def user_config_path() -> Path:
    """Per-user fallback location (honours ``XDG_CONFIG_HOME``)."""
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / "plugrest" / CONFIG_FILENAME


def find_config(start: Path | None = None) -> Path | None:
    """Locate plugrest.toml.

    ``PLUGREST_CONFIG`` wins when set (None if it points nowhere); then
    the walk-up from *start* (default: cwd); then :func:`user_config_path`.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate

    fallback = user_config_path()
    return fallback if fallback.is_file() else None


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a discovered ``plugrest.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class PlugSettings(BaseSettings):
    """Unified settings for the plugrest CLI.

    Merges CLI flags, environment variables, TOML sections and
    code-baked defaults into a single frozen object, stored on the
    CLI's :class:`~plugrest.commands._context.AppContext`.

    Attributes:
        config_path: TOML file the settings were read from, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "PLUGREST_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False

    # --- TOML sections ---
    auth: AuthConfig = Field(default_factory=AuthConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        start: Path | None = None,
        **cli_flags: Any,
    ) -> PlugSettings:
        """Construct settings from a CLI invocation.

        Uses the explicit *config_path* when it names a file, otherwise
        :func:`find_config` from *start*.  CLI flags override everything.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

    def client_params(self) -> dict[str, Any]:
        """Full :class:`~plugrest.client.rest.RestClient` construction mapping."""
        return {
            **self.connection.client_params(),
            **self.auth.client_params(),
            "debug": self.verbose,
        }
