"""Write generated machine identifiers into the host's ``storage.json``."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

from account_switch.errors import RetryExhaustedError
from account_switch.identity.generator import MachineIdentitySet, generate_identity_set

logger = logging.getLogger(__name__)

MACHINE_ID_FIELD = "telemetry.machineId"
SQM_ID_FIELD = "telemetry.sqmId"
DEV_DEVICE_ID_FIELD = "telemetry.devDeviceId"
MAC_MACHINE_ID_FIELD = "telemetry.macMachineId"


class IdentityPersister:
    """Merges identifiers into the side document with bounded write retries.

    Before write attempt ``n`` (``n >= 2``) the persister waits
    ``base_delay * n`` seconds. After ``max_attempts`` failures it raises
    :class:`RetryExhaustedError` carrying the last error.
    """

    def __init__(
        self,
        storage_path: str | Path,
        platform: str | None = None,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._path = Path(storage_path)
        self._platform = platform or sys.platform
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._sleep = sleep

    @property
    def path(self) -> Path:
        return self._path

    async def persist(self, ids: MachineIdentitySet) -> MachineIdentitySet:
        document = await asyncio.to_thread(self._load_document)
        document[MACHINE_ID_FIELD] = ids.machine_id
        document[SQM_ID_FIELD] = ids.sqm_id
        document[DEV_DEVICE_ID_FIELD] = ids.dev_device_id
        if self._platform == "darwin":
            document[MAC_MACHINE_ID_FIELD] = ids.mac_machine_id

        payload = json.dumps(document, indent=2)
        last_error: OSError | None = None
        for attempt in range(1, self._max_attempts + 1):
            if attempt > 1:
                await self._sleep(self._base_delay * attempt)
            try:
                await asyncio.to_thread(self._write_document, payload)
            except OSError as exc:
                last_error = exc
                logger.warning(
                    "Writing %s failed (%d/%d): %s",
                    self._path,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                continue
            logger.info("Updated machine identifiers in %s", self._path)
            return ids

        assert last_error is not None
        raise RetryExhaustedError(self._max_attempts, last_error) from last_error

    def _load_document(self) -> dict[str, Any]:
        try:
            content = self._path.read_bytes()
        except FileNotFoundError:
            logger.info("%s does not exist, creating it", self._path)
            return {}
        except OSError as exc:
            logger.warning(
                "Could not read %s, starting from an empty document: %s", self._path, exc
            )
            return {}
        try:
            # Covers both undecodable bytes and malformed JSON.
            document = json.loads(content.decode("utf-8"))
        except ValueError:
            logger.warning("%s is not valid JSON, starting from an empty document", self._path)
            return {}
        if not isinstance(document, dict):
            logger.warning("%s is not a JSON object, starting from an empty document", self._path)
            return {}
        return document

    def _write_document(self, payload: str) -> None:
        self._path.write_text(payload, encoding="utf-8")


async def reset_machine_identity(persister: IdentityPersister) -> MachineIdentitySet:
    """Generate a new identity set and persist it."""
    return await persister.persist(generate_identity_set())
