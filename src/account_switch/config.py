"""Configuration management for the account switcher.

Settings are resolved once by the caller (usually the CLI or the embedding
host) and passed explicitly to each component. Nothing here is cached at
module level.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from account_switch.paths import profile_dir, resolve_host_paths

_config_logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "https://server.self-serve.windsurf.com"


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class PathSettings(BaseModel):
    user_data_dir: str
    db_path: str
    storage_json_path: str
    profiles_path: str
    secrets_path: str


class HostSettings(BaseModel):
    """Names the host application uses for its state and commands."""

    auth_status_key: str = Field(default="windsurfAuthStatus")
    config_key: str = Field(default="codeium.windsurf")
    display_name_key: str = Field(default="codeium.windsurf-windsurf_auth")
    default_server_url: str = Field(default=DEFAULT_SERVER_URL)
    default_plan_name: str = Field(default="Pro")
    inject_command: str = Field(default="windsurf.provideAuthTokenToAuthProviderWithShit")
    logout_command: str = Field(default="windsurf.logout")
    reload_command: str = Field(default="workbench.action.reloadWindow")

    @field_validator("default_server_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("default_server_url must be an http(s) URL")
        return value.rstrip("/")


class SwitchSettings(BaseModel):
    reload_delay_seconds: float = Field(default=1.5, ge=0, le=60)
    identity_reset_enabled: bool = Field(default=True)
    identity_write_attempts: int = Field(default=3, ge=1, le=10)
    identity_retry_base_delay: float = Field(default=0.5, ge=0, le=10)


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    paths: PathSettings
    host: HostSettings = Field(default_factory=HostSettings)
    switch: SwitchSettings = Field(default_factory=SwitchSettings)


ENV_KEYS = {
    "log_level": "ACCOUNT_SWITCH_LOG_LEVEL",
    "log_file": "ACCOUNT_SWITCH_LOG_FILE",
    "user_data_dir": "ACCOUNT_SWITCH_USER_DATA_DIR",
    "db_path": "ACCOUNT_SWITCH_DB_PATH",
    "storage_json_path": "ACCOUNT_SWITCH_STORAGE_JSON",
    "profiles_path": "ACCOUNT_SWITCH_PROFILES_PATH",
    "secrets_path": "ACCOUNT_SWITCH_SECRETS_PATH",
    "server_url": "ACCOUNT_SWITCH_SERVER_URL",
    "plan_name": "ACCOUNT_SWITCH_PLAN_NAME",
    "reload_delay": "ACCOUNT_SWITCH_RELOAD_DELAY_SECONDS",
    "identity_reset": "ACCOUNT_SWITCH_IDENTITY_RESET",
    "identity_attempts": "ACCOUNT_SWITCH_IDENTITY_WRITE_ATTEMPTS",
    "identity_delay": "ACCOUNT_SWITCH_IDENTITY_RETRY_DELAY",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def _env_path(key: str, default: Path) -> str:
    value = os.getenv(key, "").strip()
    if not value:
        return str(default)
    return str(Path(value).expanduser())


def load_settings(platform: str | None = None, dotenv_path: str | None = None) -> Settings:
    """Build settings from the environment.

    Host paths are resolved for ``platform`` (defaults to the running
    interpreter's platform). Call this once and hand the result to each
    component.
    """
    load_dotenv(dotenv_path=dotenv_path)
    platform = platform or sys.platform

    host_paths = resolve_host_paths(platform)
    user_data_dir = Path(_env_path(ENV_KEYS["user_data_dir"], host_paths.user_data_dir))
    if user_data_dir != host_paths.user_data_dir:
        db_default = user_data_dir / "User" / "globalStorage" / "state.vscdb"
        storage_default = user_data_dir / "storage.json"
    else:
        db_default = host_paths.db_path
        storage_default = host_paths.storage_json_path
    profiles_root = profile_dir()

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": os.getenv(ENV_KEYS["log_file"]) or None,
        },
        "paths": {
            "user_data_dir": str(user_data_dir),
            "db_path": _env_path(ENV_KEYS["db_path"], db_default),
            "storage_json_path": _env_path(ENV_KEYS["storage_json_path"], storage_default),
            "profiles_path": _env_path(
                ENV_KEYS["profiles_path"], profiles_root / "profiles.json"
            ),
            "secrets_path": _env_path(ENV_KEYS["secrets_path"], profiles_root / "secrets.json"),
        },
        "host": {
            "default_server_url": os.getenv(
                ENV_KEYS["server_url"], HostSettings().default_server_url
            ),
            "default_plan_name": os.getenv(
                ENV_KEYS["plan_name"], HostSettings().default_plan_name
            ),
        },
        "switch": {
            "reload_delay_seconds": _env_float(
                ENV_KEYS["reload_delay"], SwitchSettings().reload_delay_seconds
            ),
            "identity_reset_enabled": _env_bool(
                ENV_KEYS["identity_reset"], SwitchSettings().identity_reset_enabled
            ),
            "identity_write_attempts": _env_int(
                ENV_KEYS["identity_attempts"], SwitchSettings().identity_write_attempts
            ),
            "identity_retry_base_delay": _env_float(
                ENV_KEYS["identity_delay"], SwitchSettings().identity_retry_base_delay
            ),
        },
    }

    try:
        return Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
