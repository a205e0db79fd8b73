class DomainError(Exception):
    """Base error for budget domain failures."""


class UnknownCurrency(DomainError, ValueError):
    def __init__(self, code: object):
        self.code = code
        super().__init__(f"Unsupported currency: {code}")


class StorageWriteFailure(DomainError):
    """Backend rejected a write; the in-memory state is not committed."""

    def __init__(self, key: str, reason: str = ""):
        self.key = key
        message = f"Failed to write storage key {key!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LockTimeout(DomainError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not acquire state lock after {attempts} attempts")


class CorruptStateError(DomainError):
    """Stored document cannot be decoded into an app state."""
