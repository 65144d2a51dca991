from __future__ import annotations

import asyncio
import contextlib
import os
import sqlite3
from pathlib import Path
from typing import Callable

import pytest


def pytest_sessionstart(session: pytest.Session) -> None:
    # No real backoff sleeps when settings are built from the environment.
    os.environ.setdefault("ACCOUNT_SWITCH_IDENTITY_RETRY_DELAY", "0")


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> None:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


def _create_state_db(path: Path, rows: dict[str, str] | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
        for key, value in (rows or {}).items():
            conn.execute("INSERT INTO ItemTable (key, value) VALUES (?, ?)", (key, value))
        conn.commit()
    finally:
        conn.close()
    return path


def _raw_rows(path: Path) -> dict[str, object]:
    conn = sqlite3.connect(path)
    try:
        return dict(conn.execute("SELECT key, value FROM ItemTable").fetchall())
    finally:
        conn.close()


@pytest.fixture
def make_db() -> Callable[..., Path]:
    """Factory creating a host-style state database with an ItemTable."""
    return _create_state_db


@pytest.fixture
def raw_rows() -> Callable[[Path], dict[str, object]]:
    """Reads ItemTable rows without going through the codec."""
    return _raw_rows


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return _create_state_db(
        tmp_path / "User" / "globalStorage" / "state.vscdb",
        {"host.setting": '{"theme": "dark"}'},
    )
