"""Tests for machine identity generation and persistence."""

from __future__ import annotations

import json
import re
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from account_switch.errors import RetryExhaustedError
from account_switch.identity.generator import generate_identity_set
from account_switch.identity.persister import IdentityPersister, reset_machine_identity

_UUID = r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"


class TestGenerator:
    def test_shape(self) -> None:
        ids = generate_identity_set()

        assert re.fullmatch(r"[0-9a-f]{64}", ids.machine_id)
        assert re.fullmatch(r"[0-9a-f]{128}", ids.mac_machine_id)
        assert re.fullmatch(r"\{" + _UUID.upper() + r"\}", ids.sqm_id)
        assert ids.sqm_id == ids.sqm_id.upper()
        assert re.fullmatch(_UUID, ids.dev_device_id)
        assert re.fullmatch(_UUID, ids.service_machine_id)

    def test_successive_sets_differ(self) -> None:
        first = generate_identity_set()
        second = generate_identity_set()

        assert first.machine_id != second.machine_id
        assert first.mac_machine_id != second.mac_machine_id
        assert first.sqm_id != second.sqm_id
        assert first.dev_device_id != second.dev_device_id


class TestPersister:
    @pytest.mark.asyncio
    async def test_merges_into_existing_document(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({"window.zoom": 2, "telemetry.machineId": "old"}))
        ids = generate_identity_set()

        result = await IdentityPersister(path, platform="linux").persist(ids)

        assert result == ids
        document = json.loads(path.read_text())
        assert document["window.zoom"] == 2
        assert document["telemetry.machineId"] == ids.machine_id
        assert document["telemetry.sqmId"] == ids.sqm_id
        assert document["telemetry.devDeviceId"] == ids.dev_device_id
        assert "telemetry.macMachineId" not in document

    @pytest.mark.asyncio
    async def test_mac_field_written_on_darwin(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        ids = generate_identity_set()

        await IdentityPersister(path, platform="darwin").persist(ids)

        assert json.loads(path.read_text())["telemetry.macMachineId"] == ids.mac_machine_id

    @pytest.mark.asyncio
    async def test_missing_document_is_created(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"

        await IdentityPersister(path, platform="linux").persist(generate_identity_set())

        assert set(json.loads(path.read_text())) == {
            "telemetry.machineId",
            "telemetry.sqmId",
            "telemetry.devDeviceId",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
    async def test_unparsable_document_starts_empty(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "storage.json"
        path.write_text(content)
        ids = generate_identity_set()

        await IdentityPersister(path, platform="linux").persist(ids)

        assert json.loads(path.read_text())["telemetry.machineId"] == ids.machine_id

    @pytest.mark.asyncio
    async def test_non_utf8_document_starts_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        path.write_bytes(b'{"a": "\xff\xfe"}')
        ids = generate_identity_set()

        result = await IdentityPersister(path, platform="linux").persist(ids)

        assert result == ids
        assert json.loads(path.read_text()) == {
            "telemetry.machineId": ids.machine_id,
            "telemetry.sqmId": ids.sqm_id,
            "telemetry.devDeviceId": ids.dev_device_id,
        }

    @pytest.mark.asyncio
    async def test_retries_with_linear_backoff_then_succeeds(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"
        sleep = AsyncMock()
        persister = IdentityPersister(path, platform="linux", base_delay=0.5, sleep=sleep)
        real_write = persister._write_document
        attempts = {"count": 0}

        def flaky_write(payload: str) -> None:
            attempts["count"] += 1
            if attempts["count"] < 3:
                raise PermissionError("file is locked")
            real_write(payload)

        persister._write_document = flaky_write  # type: ignore[method-assign]
        ids = generate_identity_set()

        result = await persister.persist(ids)

        assert result == ids
        assert attempts["count"] == 3
        assert [call.args[0] for call in sleep.await_args_list] == [1.0, 1.5]
        assert json.loads(path.read_text())["telemetry.sqmId"] == ids.sqm_id

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, tmp_path: Path) -> None:
        persister = IdentityPersister(tmp_path / "storage.json", sleep=AsyncMock())
        error = PermissionError("file is locked")
        calls = {"count": 0}

        def always_fail(payload: str) -> None:
            calls["count"] += 1
            raise error

        persister._write_document = always_fail  # type: ignore[method-assign]

        with pytest.raises(RetryExhaustedError) as excinfo:
            await persister.persist(generate_identity_set())

        assert calls["count"] == 3
        assert excinfo.value.attempts == 3
        assert excinfo.value.last_error is error
        assert excinfo.value.__cause__ is error
        assert "file is locked" in str(excinfo.value)

    def test_rejects_zero_attempts(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            IdentityPersister(tmp_path / "storage.json", max_attempts=0)

    @pytest.mark.asyncio
    async def test_reset_machine_identity(self, tmp_path: Path) -> None:
        path = tmp_path / "storage.json"

        ids = await reset_machine_identity(IdentityPersister(path, platform="linux"))

        assert json.loads(path.read_text())["telemetry.devDeviceId"] == ids.dev_device_id
