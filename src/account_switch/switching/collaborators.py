"""Interfaces the switch flow needs from the host, plus stock adapters."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol

from account_switch.errors import CommandUnavailableError

if TYPE_CHECKING:
    from account_switch.profiles.models import CredentialProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchResult:
    needs_restart: bool = False
    error: str | None = None


class PatchService(Protocol):
    async def check_and_apply(self) -> PatchResult: ...


class CommandRunner(Protocol):
    """The host's command bus."""

    async def execute(self, command: str, *args: Any) -> Any: ...

    async def has_command(self, command: str) -> bool: ...


class SessionInjector(Protocol):
    async def attempt(self, api_key: str, display_name: str, server_url: str) -> None: ...

    async def is_available(self) -> bool: ...


class LogoutCommand(Protocol):
    async def logout(self) -> None: ...


class ReloadSignal(Protocol):
    def request_reload(self) -> None: ...


class ProfileRepository(Protocol):
    async def list(self) -> list["CredentialProfile"]: ...

    async def get(self, profile_id: str) -> "CredentialProfile | None": ...


class NoopPatchService:
    """Patch check for hosts that already expose the injection command."""

    async def check_and_apply(self) -> PatchResult:
        return PatchResult()


class HostCommandInjector:
    """Hands credentials to the running host through its command bus."""

    def __init__(self, runner: CommandRunner, command: str) -> None:
        self._runner = runner
        self._command = command

    async def is_available(self) -> bool:
        try:
            return await self._runner.has_command(self._command)
        except Exception as exc:
            logger.warning("Could not list host commands: %s", exc)
            return False

    async def attempt(self, api_key: str, display_name: str, server_url: str) -> None:
        payload = {"apiKey": api_key, "name": display_name, "apiServerUrl": server_url}
        try:
            await self._runner.execute(self._command, payload)
        except CommandUnavailableError:
            raise
        except Exception as exc:
            raise CommandUnavailableError(self._command, str(exc)) from exc


class UnavailableInjector:
    """Injector used outside the host process, where no command bus exists."""

    def __init__(self, command: str = "live-injection") -> None:
        self._command = command

    async def is_available(self) -> bool:
        return False

    async def attempt(self, api_key: str, display_name: str, server_url: str) -> None:
        raise CommandUnavailableError(self._command, "no host command bus")


class HostLogoutCommand:
    def __init__(self, runner: CommandRunner, command: str) -> None:
        self._runner = runner
        self._command = command

    async def logout(self) -> None:
        await self._runner.execute(self._command)


class NoopLogout:
    async def logout(self) -> None:
        return None


class DeferredReload:
    """Schedules ``callback`` on the running loop after ``delay`` seconds.

    ``callback`` may be a plain function or a coroutine function. Requests
    made while no loop is running fire immediately.
    """

    def __init__(self, callback: Callable[[], Any], delay: float = 1.5) -> None:
        self._callback = callback
        self._delay = delay
        self._handles: dict[int, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self.requests = 0

    @classmethod
    def for_command(
        cls, runner: CommandRunner, command: str, delay: float = 1.5
    ) -> "DeferredReload":
        async def _reload() -> None:
            await runner.execute(command)

        return cls(_reload, delay)

    def request_reload(self) -> None:
        self.requests += 1
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            result = self._invoke()
            if inspect.isawaitable(result):
                asyncio.run(_await(result))
            return
        logger.info("Host reload scheduled in %.1fs", self._delay)
        self._handles[self.requests] = loop.call_later(self._delay, self._fire, self.requests)

    def cancel(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def _invoke(self) -> Any:
        try:
            return self._callback()
        except Exception as exc:
            logger.error("Host reload failed: %s", exc)
            return None

    def _fire(self, request: int) -> None:
        self._handles.pop(request, None)
        result = self._invoke()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Host reload failed: %s", task.exception())


async def _await(awaitable: Any) -> Any:
    try:
        return await awaitable
    except Exception as exc:
        logger.error("Host reload failed: %s", exc)
        return None
