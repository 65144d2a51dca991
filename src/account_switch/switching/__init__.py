"""Account switch orchestration."""

from account_switch.switching.collaborators import (
    CommandRunner,
    DeferredReload,
    HostCommandInjector,
    HostLogoutCommand,
    LogoutCommand,
    NoopLogout,
    NoopPatchService,
    PatchResult,
    PatchService,
    ProfileRepository,
    ReloadSignal,
    SessionInjector,
    UnavailableInjector,
)
from account_switch.switching.orchestrator import AccountSwitcher
from account_switch.switching.results import StepResult, SwitchOutcome
from account_switch.switching.snapshot import AuthStatusSnapshot, write_auth_records

__all__ = [
    "AccountSwitcher",
    "AuthStatusSnapshot",
    "CommandRunner",
    "DeferredReload",
    "HostCommandInjector",
    "HostLogoutCommand",
    "LogoutCommand",
    "NoopLogout",
    "NoopPatchService",
    "PatchResult",
    "PatchService",
    "ProfileRepository",
    "ReloadSignal",
    "SessionInjector",
    "StepResult",
    "SwitchOutcome",
    "UnavailableInjector",
    "write_auth_records",
]
