"""Records written into the host database to make a profile active."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any
from uuid import uuid4

from account_switch.config import HostSettings
from account_switch.profiles.models import CredentialProfile
from account_switch.store.kv_store import KeyValueStore


@dataclass(frozen=True)
class AuthStatusSnapshot:
    name: str
    apiKey: str
    email: str
    teamId: str
    planName: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_stored(cls, value: Any) -> "AuthStatusSnapshot | None":
        if not isinstance(value, dict):
            return None
        try:
            return cls(
                name=str(value.get("name", "")),
                apiKey=str(value["apiKey"]),
                email=str(value.get("email", "")),
                teamId=str(value.get("teamId", "")),
                planName=str(value.get("planName", "")),
            )
        except KeyError:
            return None


def server_url_for(profile: CredentialProfile, host: HostSettings) -> str:
    return profile.api_server_url or host.default_server_url


async def write_auth_records(
    store: KeyValueStore, profile: CredentialProfile, host: HostSettings
) -> AuthStatusSnapshot:
    """Write the auth status, config bundle and display name for ``profile``.

    Each record gets freshly generated ids. Any write failure propagates.
    """
    snapshot = AuthStatusSnapshot(
        name=profile.name,
        apiKey=profile.api_key,
        email=profile.email,
        teamId=str(uuid4()),
        planName=profile.plan_name or host.default_plan_name,
    )
    await store.write(host.auth_status_key, snapshot.to_dict())

    config_bundle = {
        "codeium.installationId": str(uuid4()),
        "codeium.apiKey": profile.api_key,
        "apiServerUrl": server_url_for(profile, host),
        "codeium.hasOneTimeUpdatedUnspecifiedMode": True,
    }
    await store.write(host.config_key, config_bundle)

    await store.write(host.display_name_key, profile.name)
    return snapshot
