"""Platform-specific locations of the host application's state files."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

HOST_APP_DIR_NAME = "Windsurf"
PROFILE_DIR_NAME = ".account-switch"


@dataclass(frozen=True)
class HostPaths:
    user_data_dir: Path
    db_path: Path
    storage_json_path: Path

    def as_dict(self) -> dict[str, str]:
        return {
            "user_data": str(self.user_data_dir),
            "database": str(self.db_path),
            "storage": str(self.storage_json_path),
        }


def user_data_dir(
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> Path:
    """Return the host's per-user data directory for ``platform``."""
    platform = platform or sys.platform
    env = os.environ if env is None else env
    home = home or Path.home()

    if platform == "win32":
        app_data = env.get("APPDATA")
        base = Path(app_data) if app_data else home / "AppData" / "Roaming"
        return base / HOST_APP_DIR_NAME
    if platform == "darwin":
        return home / "Library" / "Application Support" / HOST_APP_DIR_NAME
    return home / ".config" / HOST_APP_DIR_NAME


def resolve_host_paths(
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> HostPaths:
    base = user_data_dir(platform, env, home)
    return HostPaths(
        user_data_dir=base,
        db_path=base / "User" / "globalStorage" / "state.vscdb",
        storage_json_path=base / "storage.json",
    )


def profile_dir(home: Path | None = None) -> Path:
    return (home or Path.home()) / PROFILE_DIR_NAME
