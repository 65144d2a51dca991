"""Machine identifier generation and persistence."""

from account_switch.identity.generator import MachineIdentitySet, generate_identity_set
from account_switch.identity.persister import IdentityPersister, reset_machine_identity

__all__ = [
    "IdentityPersister",
    "MachineIdentitySet",
    "generate_identity_set",
    "reset_machine_identity",
]
