"""Configuration loading: YAML/JSON file, then .env, then process environment."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from ..errors import ConfigError
from .models import WatchConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
ENV_PREFIX = "SYLLABUS_WATCH_"
DEFAULT_CONFIG_PATH = Path("syllabus-watch.yaml")
DEFAULT_ENV_FILE = Path(".env")

# Environment variable suffix -> dotted config path.
ENV_FIELDS: dict[str, str] = {
    "BASE_URL": "portal.base_url",
    "LOGIN_URL": "portal.login_url",
    "SEARCH_YEAR": "portal.search_year",
    "REQUIRES_LOGIN": "portal.requires_login",
    "LAYOUT": "portal.layout",
    "USERNAME": "portal.credentials.username",
    "PASSWORD": "portal.credentials.password",
    "OTP": "portal.credentials.otp",
    "WORKERS": "fetch.workers",
    "PACING_DELAY": "fetch.pacing_delay",
    "USER_AGENT": "fetch.user_agent",
    "SNAPSHOT_PATH": "output.snapshot_path",
    "REPORT_PATH": "output.report_path",
    "LOG_DIR": "output.log_dir",
    "WEBHOOK_URL": "notify.webhook_url",
}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _set_dotted(payload: dict, dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    node = payload
    for key in parents:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[leaf] = value


def _env_overrides(environ: Mapping[str, str | None]) -> dict:
    overrides: dict = {}
    for suffix, dotted in ENV_FIELDS.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value is None or value == "":
            continue
        _set_dotted(overrides, dotted, value)
    return overrides


def _merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigRepository:
    """Build a validated :class:`WatchConfig` from its layered sources."""

    def __init__(
        self,
        config_path: Path | None = None,
        env_file: Path | None = DEFAULT_ENV_FILE,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config_path = config_path
        self.env_file = env_file
        self.environ = os.environ if environ is None else environ

    def _resolve_config_path(self) -> Path | None:
        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigError(f"Configuration file not found: {self.config_path}")
            if self.config_path.suffix not in CONFIG_EXTENSIONS:
                raise ConfigError(f"Unsupported configuration format: {self.config_path}")
            return self.config_path
        if DEFAULT_CONFIG_PATH.exists():
            return DEFAULT_CONFIG_PATH
        return None

    def load(self, *, require_source: bool = True) -> WatchConfig:
        """Return the merged configuration.

        Raises ConfigError when the payload is invalid or, with
        ``require_source``, when the portal locator or credentials are missing.
        """

        payload: dict = {}
        path = self._resolve_config_path()
        if path is not None:
            try:
                payload = _read_file(path)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
                raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
        if self.env_file is not None and self.env_file.exists():
            payload = _merge(payload, _env_overrides(dotenv_values(self.env_file)))
        payload = _merge(payload, _env_overrides(self.environ))

        try:
            config = WatchConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

        if require_source:
            missing = config.missing_requirements()
            if missing:
                raise ConfigError("Missing required settings: " + ", ".join(missing))
        return config

    @staticmethod
    def save(config: WatchConfig, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = config.model_dump(mode="json")
        with path.open("w", encoding="utf-8") as stream:
            if path.suffix in (".yaml", ".yml"):
                yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
            else:
                json.dump(payload, stream, indent=2, ensure_ascii=False)
        return path


__all__ = ["CONFIG_EXTENSIONS", "ConfigRepository", "ENV_FIELDS", "ENV_PREFIX"]
