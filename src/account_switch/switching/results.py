"""Result types returned by the switch flow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Outcome of a best-effort step. Callers log ``error`` and move on."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    async def capture(cls, awaitable: Awaitable[T]) -> "StepResult[T]":
        try:
            return cls(value=await awaitable)
        except Exception as exc:
            return cls(error=exc)


@dataclass(frozen=True)
class SwitchOutcome:
    success: bool
    error: str | None = None
    needs_restart: bool = False
    reloading: bool = False

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.needs_restart:
            data["needsRestart"] = True
        return data
