"""Account switch flow.

A switch runs four steps in order:

1. patch check (fatal on error, aborts with a restart on ``needs_restart``)
2. logout of the current session (best effort)
3. machine identity reset (best effort)
4. live session injection, falling back to writing the auth records into the
   host database and requesting a reload when injection is unavailable

Concurrent switches are not guarded here; callers must serialize them.
"""

from __future__ import annotations

import logging
from datetime import datetime

from account_switch.config import HostSettings, SwitchSettings
from account_switch.errors import PatchUnavailableError
from account_switch.identity.generator import generate_identity_set
from account_switch.identity.persister import IdentityPersister
from account_switch.logging_utils import mask_secret
from account_switch.profiles.models import CredentialProfile
from account_switch.profiles.repository import JsonProfileRepository
from account_switch.store.kv_store import KeyValueStore
from account_switch.switching.collaborators import (
    LogoutCommand,
    PatchResult,
    PatchService,
    ReloadSignal,
    SessionInjector,
)
from account_switch.switching.results import StepResult, SwitchOutcome
from account_switch.switching.snapshot import (
    AuthStatusSnapshot,
    server_url_for,
    write_auth_records,
)

logger = logging.getLogger(__name__)

RESTART_MESSAGE = "Patch applied, host is restarting. Switch again after the restart."


class AccountSwitcher:
    def __init__(
        self,
        store: KeyValueStore,
        identity_persister: IdentityPersister,
        patch_service: PatchService,
        injector: SessionInjector,
        logout: LogoutCommand,
        reload: ReloadSignal,
        host: HostSettings | None = None,
        switch_settings: SwitchSettings | None = None,
    ) -> None:
        self._store = store
        self._identity_persister = identity_persister
        self._patch_service = patch_service
        self._injector = injector
        self._logout = logout
        self._reload = reload
        self._host = host or HostSettings()
        self._settings = switch_settings or SwitchSettings()
        self.last_log: list[str] = []

    def _log(self, message: str, level: int = logging.INFO) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.last_log.append(f"[{timestamp}] {message}")
        logger.log(level, message)

    async def switch(self, profile: CredentialProfile) -> SwitchOutcome:
        """Make ``profile`` the host's active account."""
        self.last_log = []
        try:
            self._log("Starting account switch")
            self._log(f"Target account: {profile.email}")

            outcome = await self._check_patch()
            if outcome is not None:
                return outcome

            self._log("Step 2: logging out current session")
            logout = await StepResult.capture(self._logout.logout())
            if logout.ok:
                self._log("Logged out")
            else:
                self._log(f"Logout unavailable, continuing: {logout.error}", logging.WARNING)

            await self._reset_identity()

            return await self._inject(profile)
        except Exception as exc:
            self._log(f"Switch failed: {exc}", logging.ERROR)
            return SwitchOutcome(success=False, error=str(exc))

    async def switch_next(self, repository: JsonProfileRepository) -> SwitchOutcome:
        """Switch to the profile after the current one and advance the index."""
        profile, index = await repository.next_profile()
        if profile is None:
            return SwitchOutcome(success=False, error="No saved profiles")
        outcome = await self.switch(profile)
        if outcome.success:
            await repository.set_current_index(index)
        return outcome

    async def current_account(self) -> AuthStatusSnapshot | None:
        return AuthStatusSnapshot.from_stored(await self._store.read(self._host.auth_status_key))

    async def is_live_injection_supported(self) -> bool:
        return await self._injector.is_available()

    async def _check_patch(self) -> SwitchOutcome | None:
        self._log("Step 1: checking host patch")
        try:
            result: PatchResult = await self._patch_service.check_and_apply()
        except Exception as exc:
            raise PatchUnavailableError(f"Patch check failed: {exc}") from exc

        if result.needs_restart:
            self._log("Patch applied, restart required")
            self._reload.request_reload()
            return SwitchOutcome(success=False, needs_restart=True, error=RESTART_MESSAGE)
        if result.error:
            self._log(f"Patch check failed: {result.error}", logging.ERROR)
            return SwitchOutcome(success=False, error=result.error)
        self._log("Patch check passed")
        return None

    async def _reset_identity(self) -> None:
        if not self._settings.identity_reset_enabled:
            self._log("Step 3: machine identity reset disabled")
            return
        self._log("Step 3: resetting machine identity")
        reset = await StepResult.capture(
            self._identity_persister.persist(generate_identity_set())
        )
        if reset.ok and reset.value is not None:
            self._log(f"New machine id: {reset.value.machine_id[:16]}...")
        else:
            self._log(f"Machine identity reset skipped: {reset.error}", logging.WARNING)

    async def _inject(self, profile: CredentialProfile) -> SwitchOutcome:
        server_url = server_url_for(profile, self._host)
        self._log("Step 4: injecting session")
        self._log(f"API key: {mask_secret(profile.api_key, 20)}")

        injected = await StepResult.capture(
            self._injector.attempt(profile.api_key, profile.email, server_url)
        )
        if injected.ok:
            self._log("Session injected")
            backstop = await StepResult.capture(
                write_auth_records(self._store, profile, self._host)
            )
            if not backstop.ok:
                self._log(f"Backstop write failed: {backstop.error}", logging.WARNING)
            self._log(f"Switched to {profile.email}")
            return SwitchOutcome(success=True)

        self._log(f"Session injection failed: {injected.error}", logging.WARNING)
        self._log("Falling back to database rewrite and host reload")
        await write_auth_records(self._store, profile, self._host)
        self._log("Auth records written")
        self._reload.request_reload()
        return SwitchOutcome(success=True, reloading=True)
