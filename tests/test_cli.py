"""End-to-end tests for the command-line entrypoint."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from account_switch import cli, config


@pytest.fixture
def env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, make_db: Callable[..., Path]
) -> Path:
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)
    monkeypatch.setenv("ACCOUNT_SWITCH_USER_DATA_DIR", str(tmp_path / "host"))
    monkeypatch.setenv("ACCOUNT_SWITCH_PROFILES_PATH", str(tmp_path / "profiles.json"))
    monkeypatch.setenv("ACCOUNT_SWITCH_SECRETS_PATH", str(tmp_path / "secrets.json"))
    make_db(tmp_path / "host" / "User" / "globalStorage" / "state.vscdb")
    return tmp_path


def _import(env: Path, capsys: pytest.CaptureFixture[str]) -> list[dict]:
    source = env / "accounts.yaml"
    source.write_text(
        "- email: a@example.com\n  apiKey: key-a\n- email: b@example.com\n  apiKey: key-b\n"
    )
    assert cli.main(["profiles", "import", str(source)]) == 0
    capsys.readouterr()
    assert cli.main(["profiles", "export"]) == 0
    return json.loads(capsys.readouterr().out)


def test_switch_falls_back_to_database(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    profiles = _import(env, capsys)

    assert cli.main(["switch", profiles[1]["id"]]) == 0
    assert "Reload the host" in capsys.readouterr().out

    assert cli.main(["current"]) == 0
    current = json.loads(capsys.readouterr().out)
    assert current["email"] == "b@example.com"
    assert current["apiKey"] == "*****"

    storage = json.loads((env / "host" / "storage.json").read_text())
    assert "telemetry.machineId" in storage


def test_switch_next_advances(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _import(env, capsys)

    assert cli.main(["switch-next"]) == 0
    assert cli.main(["current"]) == 0
    out = capsys.readouterr().out
    assert '"email": "b@example.com"' in out


def test_switch_unknown_profile(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["switch", "missing"]) == 1
    assert "Profile not found" in capsys.readouterr().err


def test_kv_commands(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _import(env, capsys)
    profiles = json.loads((env / "profiles.json").read_text())["profiles"]
    assert cli.main(["switch", profiles[0]["id"]]) == 0
    capsys.readouterr()

    assert cli.main(["kv", "keys", "codeium.%"]) == 0
    assert capsys.readouterr().out.split() == [
        "codeium.windsurf",
        "codeium.windsurf-windsurf_auth",
    ]

    assert cli.main(["kv", "get", "codeium.windsurf-windsurf_auth"]) == 0
    assert json.loads(capsys.readouterr().out) == "a"

    assert cli.main(["kv", "delete-pattern", "codeium.%"]) == 0
    assert "Deleted 2 row(s)" in capsys.readouterr().out
    assert cli.main(["kv", "get", "codeium.windsurf"]) == 1


def test_backup_and_paths(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["backup"]) == 0
    backup = Path(capsys.readouterr().out.strip())
    assert backup.exists()

    assert cli.main(["paths"]) == 0
    paths = json.loads(capsys.readouterr().out)
    assert paths["db_path"].endswith("state.vscdb")


def test_reset_ids(env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["reset-ids"]) == 0
    ids = json.loads(capsys.readouterr().out)

    storage = json.loads((env / "host" / "storage.json").read_text())
    assert storage["telemetry.machineId"] == ids["machine_id"]


def test_corrupt_profiles_file_is_reported(
    env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (env / "profiles.json").write_text("{not json")

    assert cli.main(["profiles", "list"]) == 1
    assert "is not valid JSON" in capsys.readouterr().err


def test_invalid_configuration_is_reported(
    env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("ACCOUNT_SWITCH_IDENTITY_WRITE_ATTEMPTS", "0")

    assert cli.main(["paths"]) == 1
    assert "Invalid configuration" in capsys.readouterr().err
