"""Configuration helpers for the provision CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from provision_sdk.client import API_BASE_ENV_VAR, DEFAULT_API_BASE
from provision_sdk.export import DEFAULT_EXPORT_PREFIX, DEFAULT_EXPORT_TITLE
from provision_sdk.logging_config import DEFAULT_LOG_LEVEL
from provision_sdk.persistence import DEFAULT_STORAGE_KEY
from provision_sdk.progress import DEFAULT_PROGRESS_INTERVAL, DEFAULT_PROGRESS_LINGER

DEFAULT_CONFIG_PATH = Path.home() / ".provision_agent" / "config.toml"
DEFAULT_STATE_DIR = str(Path.home() / ".provision_agent" / "state")
DEFAULT_REGISTRATION_URL = "https://example.com/"
DEFAULT_LOGIN_URL = "https://example.com"
LOG_LEVEL_ENV_VAR = "PROVISION_LOG_LEVEL"

_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class CLIConfig:
    api_base: str = DEFAULT_API_BASE
    registration_url: str = DEFAULT_REGISTRATION_URL
    login_url: str = DEFAULT_LOGIN_URL
    export_title: str = DEFAULT_EXPORT_TITLE
    export_prefix: str = DEFAULT_EXPORT_PREFIX
    state_dir: str = DEFAULT_STATE_DIR
    storage_key: str = DEFAULT_STORAGE_KEY
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL
    progress_linger: float = DEFAULT_PROGRESS_LINGER
    request_timeout: float | None = None
    retries: int = 2
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str | None = None


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:  # Python 3.11+
        import tomllib  # type: ignore[attr-defined]
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    except ModuleNotFoundError:
        try:
            import tomli
        except ModuleNotFoundError as exc:
            raise ConfigError("toml parser unavailable; install tomli for Python < 3.11") from exc
        try:
            return tomli.loads(raw)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _to_text(source: dict[str, Any], field_name: str, default: str) -> str:
    value = str(source.get(field_name, default)).strip()
    if not value:
        raise ConfigError(f"{field_name} must not be empty")
    return value


def _to_float(value: Any, field_name: str, *, minimum: float = 0.0) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a number") from exc
    if parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum:g}")
    return parsed


def _to_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{field_name} must be an integer")
    if value < 0:
        raise ConfigError(f"{field_name} must be >= 0")
    return value


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    source: dict[str, Any] = {}
    if config_path.exists():
        parsed = _load_toml(config_path)
        section = parsed.get("cli")
        if isinstance(section, dict):
            source = section
        elif section is None:
            source = parsed
        else:
            raise ConfigError("[cli] must be a table")

    env_api_base = os.getenv(API_BASE_ENV_VAR)
    configured_api_base = str(source.get("api_base", DEFAULT_API_BASE)).strip()
    api_base = env_api_base.strip() if env_api_base else configured_api_base
    if not api_base:
        raise ConfigError("api_base must not be empty")

    storage_key = _to_text(source, "storage_key", DEFAULT_STORAGE_KEY)
    if "/" in storage_key or "\\" in storage_key:
        raise ConfigError("storage_key must not contain path separators")

    progress_interval = _to_float(
        source.get("progress_interval", DEFAULT_PROGRESS_INTERVAL), "progress_interval"
    )
    if progress_interval <= 0:
        raise ConfigError("progress_interval must be > 0")

    request_timeout_raw = source.get("request_timeout")
    request_timeout = (
        None
        if request_timeout_raw is None
        else _to_float(request_timeout_raw, "request_timeout")
    )
    if request_timeout == 0:
        raise ConfigError("request_timeout must be > 0 when set")

    env_log_level = os.getenv(LOG_LEVEL_ENV_VAR)
    log_level = (env_log_level or str(source.get("log_level", DEFAULT_LOG_LEVEL))).strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigError(f"log_level must be one of: {', '.join(sorted(_LOG_LEVELS))}")

    log_file_raw = source.get("log_file")
    log_file = str(log_file_raw).strip() or None if log_file_raw is not None else None

    return CLIConfig(
        api_base=api_base,
        registration_url=_to_text(source, "registration_url", DEFAULT_REGISTRATION_URL),
        login_url=_to_text(source, "login_url", DEFAULT_LOGIN_URL),
        export_title=_to_text(source, "export_title", DEFAULT_EXPORT_TITLE),
        export_prefix=_to_text(source, "export_prefix", DEFAULT_EXPORT_PREFIX),
        state_dir=str(Path(_to_text(source, "state_dir", DEFAULT_STATE_DIR)).expanduser()),
        storage_key=storage_key,
        progress_interval=progress_interval,
        progress_linger=_to_float(
            source.get("progress_linger", DEFAULT_PROGRESS_LINGER), "progress_linger"
        ),
        request_timeout=request_timeout,
        retries=_to_int(source.get("retries", 2), "retries"),
        log_level=log_level,
        log_file=log_file,
    )
