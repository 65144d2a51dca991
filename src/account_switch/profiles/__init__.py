"""Saved credential profiles."""

from account_switch.profiles.models import CredentialProfile, ProfileInput
from account_switch.profiles.repository import FileSecretStore, JsonProfileRepository

__all__ = [
    "CredentialProfile",
    "FileSecretStore",
    "JsonProfileRepository",
    "ProfileInput",
]
