"""Exception types shared across the account switcher."""

from __future__ import annotations


class AccountSwitchError(Exception):
    """Base exception for account switching failures."""

    pass


class InvalidValueError(AccountSwitchError):
    """Raised when a null value is written to the key-value table."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Cannot write a null value to key: {key}")


class StoreIOError(AccountSwitchError):
    """Raised when the database image cannot be loaded or written back."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class SerializationError(AccountSwitchError):
    """Raised when a value cannot be encoded for storage and read back unchanged."""

    pass


class PatchUnavailableError(AccountSwitchError):
    """Raised when the host patch check cannot be completed."""

    pass


class CommandUnavailableError(AccountSwitchError):
    """Raised when a host command is missing or refuses to run."""

    def __init__(self, command: str, reason: str | None = None) -> None:
        self.command = command
        message = f"Command '{command}' is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RetryExhaustedError(AccountSwitchError):
    """Raised when a bounded retry loop gives up."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


class ProfileNotFoundError(AccountSwitchError):
    """Raised when a credential profile id is unknown."""

    def __init__(self, profile_id: str) -> None:
        self.profile_id = profile_id
        super().__init__(f"Profile not found: {profile_id}")
