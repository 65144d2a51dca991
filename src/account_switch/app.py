"""Application context assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from account_switch.config import Settings
from account_switch.identity.persister import IdentityPersister
from account_switch.profiles.repository import FileSecretStore, JsonProfileRepository
from account_switch.store.kv_store import KeyValueStore
from account_switch.switching.collaborators import (
    DeferredReload,
    LogoutCommand,
    NoopLogout,
    NoopPatchService,
    PatchService,
    ReloadSignal,
    SessionInjector,
    UnavailableInjector,
)
from account_switch.switching.orchestrator import AccountSwitcher

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Dependency container built once from :class:`Settings`.

    Each component receives its paths explicitly; nothing here is a
    process-wide singleton.
    """

    settings: Settings
    store: KeyValueStore
    identity_persister: IdentityPersister
    profiles: JsonProfileRepository
    switcher: AccountSwitcher


def _log_reload_request() -> None:
    logger.warning("Reload the host application to pick up the new account")


def build_app_context(
    settings: Settings,
    *,
    patch_service: PatchService | None = None,
    injector: SessionInjector | None = None,
    logout: LogoutCommand | None = None,
    reload: ReloadSignal | None = None,
) -> AppContext:
    """Wire the components together.

    Host-provided collaborators default to the out-of-process variants: no
    patch step, no logout, no live injection, and a reload request that is
    only logged.
    """
    store = KeyValueStore(settings.paths.db_path)
    identity_persister = IdentityPersister(
        settings.paths.storage_json_path,
        max_attempts=settings.switch.identity_write_attempts,
        base_delay=settings.switch.identity_retry_base_delay,
    )
    profiles = JsonProfileRepository(
        settings.paths.profiles_path,
        FileSecretStore(settings.paths.secrets_path),
        default_server_url=settings.host.default_server_url,
        default_plan_name=settings.host.default_plan_name,
    )
    switcher = AccountSwitcher(
        store=store,
        identity_persister=identity_persister,
        patch_service=patch_service or NoopPatchService(),
        injector=injector or UnavailableInjector(settings.host.inject_command),
        logout=logout or NoopLogout(),
        reload=reload or DeferredReload(_log_reload_request, delay=0),
        host=settings.host,
        switch_settings=settings.switch,
    )
    return AppContext(
        settings=settings,
        store=store,
        identity_persister=identity_persister,
        profiles=profiles,
        switcher=switcher,
    )
