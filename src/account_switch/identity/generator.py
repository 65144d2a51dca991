"""Fresh machine identifiers for the host's telemetry fields."""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import asdict, dataclass
from uuid import uuid4


@dataclass(frozen=True)
class MachineIdentitySet:
    machine_id: str
    mac_machine_id: str
    sqm_id: str
    dev_device_id: str
    service_machine_id: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def generate_identity_set() -> MachineIdentitySet:
    """Generate a new, unrelated set of identifiers from the OS CSPRNG."""
    return MachineIdentitySet(
        machine_id=hashlib.sha256(secrets.token_bytes(32)).hexdigest(),
        mac_machine_id=hashlib.sha512(secrets.token_bytes(64)).hexdigest(),
        sqm_id=f"{{{str(uuid4()).upper()}}}",
        dev_device_id=str(uuid4()),
        service_machine_id=str(uuid4()),
    )
