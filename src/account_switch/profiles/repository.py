"""File-backed profile repository with secrets kept in a separate store."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import yaml
from pydantic import ValidationError

from account_switch.errors import ProfileNotFoundError
from account_switch.profiles.models import CredentialProfile, ProfileInput

logger = logging.getLogger(__name__)

SECRETS_PREFIX = "account_switch.secret."
_SECRET_FIELDS = {"api_key": "apiKey", "refresh_token": "refreshToken"}


def _utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _read_json(path: Path, default: Any) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default
    except ValueError as exc:
        raise RuntimeError(f"{path} is not valid JSON: {exc}") from exc


def _write_json(path: Path, data: Any, mode: int | None = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    if mode is not None:
        os.chmod(tmp, mode)
    os.replace(tmp, path)


class FileSecretStore:
    """Flat secret map persisted as a user-only JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return _read_json(self._path, {}).get(key)

    def store(self, key: str, value: str) -> None:
        with self._lock:
            data = _read_json(self._path, {})
            data[key] = value
            _write_json(self._path, data, mode=0o600)

    def delete(self, key: str) -> None:
        with self._lock:
            data = _read_json(self._path, {})
            if data.pop(key, None) is not None:
                _write_json(self._path, data, mode=0o600)


class JsonProfileRepository:
    """CRUD over saved credential profiles.

    The profile file never holds secret values; they are resolved from the
    secret store on every read.
    """

    def __init__(
        self,
        profiles_path: str | Path,
        secrets: FileSecretStore,
        default_server_url: str,
        default_plan_name: str = "Pro",
    ) -> None:
        self._path = Path(profiles_path)
        self._secrets = secrets
        self._default_server_url = default_server_url
        self._default_plan_name = default_plan_name
        self._lock = threading.Lock()

    async def list(self) -> list[CredentialProfile]:
        return await asyncio.to_thread(self._list_sync)

    async def get(self, profile_id: str) -> CredentialProfile | None:
        for profile in await self.list():
            if profile.id == profile_id:
                return profile
        return None

    async def add(self, data: ProfileInput) -> CredentialProfile:
        return await asyncio.to_thread(self._add_sync, data)

    async def update(self, profile_id: str, **changes: Any) -> CredentialProfile:
        return await asyncio.to_thread(self._update_sync, profile_id, changes)

    async def remove(self, profile_id: str) -> bool:
        return await asyncio.to_thread(self._remove_sync, profile_id)

    async def import_profiles(self, text: str) -> int:
        """Add every usable entry of a JSON or YAML document and return the count."""
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid profile data: {exc}") from exc
        if loaded is None:
            return 0
        entries = loaded if isinstance(loaded, list) else [loaded]

        count = 0
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                data = ProfileInput.model_validate(entry)
            except ValidationError as exc:
                logger.warning("Skipping invalid profile entry: %s", exc.errors()[0]["msg"])
                continue
            if not data.email or not (data.api_key or data.refresh_token):
                continue
            await self.add(data)
            count += 1
        return count

    async def export_profiles(self) -> str:
        profiles = await self.list()
        return json.dumps([p.model_dump() for p in profiles], indent=2)

    async def current_index(self) -> int:
        state = await asyncio.to_thread(self._load_state)
        return int(state.get("currentIndex", 0))

    async def set_current_index(self, index: int) -> None:
        def _set() -> None:
            with self._lock:
                state = self._load_state()
                state["currentIndex"] = index
                _write_json(self._path, state)

        await asyncio.to_thread(_set)

    async def next_profile(self) -> tuple[CredentialProfile | None, int]:
        """Return the profile after the current one, wrapping around."""
        profiles = await self.list()
        if not profiles:
            return None, -1
        index = (await self.current_index() + 1) % len(profiles)
        return profiles[index], index

    def _load_state(self) -> dict[str, Any]:
        state = _read_json(self._path, {})
        state.setdefault("profiles", [])
        return state

    def _secret_key(self, profile_id: str, field: str) -> str:
        return f"{SECRETS_PREFIX}{profile_id}.{_SECRET_FIELDS[field]}"

    def _with_secrets(self, profile: CredentialProfile) -> CredentialProfile:
        updates = {}
        for field in _SECRET_FIELDS:
            secret = self._secrets.get(self._secret_key(profile.id, field))
            if secret:
                updates[field] = secret
        return profile.model_copy(update=updates)

    def _store_secrets(self, profile: CredentialProfile) -> None:
        for field in _SECRET_FIELDS:
            value = getattr(profile, field)
            if value:
                self._secrets.store(self._secret_key(profile.id, field), value)

    def _list_sync(self) -> list[CredentialProfile]:
        with self._lock:
            state = self._load_state()
        return [
            self._with_secrets(CredentialProfile.model_validate(raw))
            for raw in state["profiles"]
        ]

    def _add_sync(self, data: ProfileInput) -> CredentialProfile:
        now = _utc_now_iso()
        profile = CredentialProfile(
            id=str(uuid4()),
            email=data.email,
            name=data.name or data.email.split("@")[0],
            api_key=data.api_key,
            api_server_url=data.api_server_url or self._default_server_url,
            refresh_token=data.refresh_token,
            plan_name=data.plan_name or self._default_plan_name,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._store_secrets(profile)
            state = self._load_state()
            state["profiles"].append(profile.without_secrets().model_dump())
            _write_json(self._path, state)
        logger.info("Added profile %s (%s)", profile.id, profile.email)
        return profile

    def _update_sync(self, profile_id: str, changes: dict[str, Any]) -> CredentialProfile:
        with self._lock:
            state = self._load_state()
            for index, raw in enumerate(state["profiles"]):
                if raw.get("id") == profile_id:
                    break
            else:
                raise ProfileNotFoundError(profile_id)

            changes = {k: v for k, v in changes.items() if k not in {"id", "created_at"}}
            updated = CredentialProfile.model_validate(
                {**raw, **changes, "updated_at": _utc_now_iso()}
            )
            self._store_secrets(updated)
            state["profiles"][index] = updated.without_secrets().model_dump()
            _write_json(self._path, state)
        return self._with_secrets(updated)

    def _remove_sync(self, profile_id: str) -> bool:
        with self._lock:
            state = self._load_state()
            remaining = [raw for raw in state["profiles"] if raw.get("id") != profile_id]
            if len(remaining) == len(state["profiles"]):
                return False
            for field in _SECRET_FIELDS:
                self._secrets.delete(self._secret_key(profile_id, field))
            state["profiles"] = remaining
            _write_json(self._path, state)
        logger.info("Removed profile %s", profile_id)
        return True
