"""
Wallet service exceptions.

Adapters raise StoreUnavailableError for infrastructure failures; the wallet
record store absorbs it and degrades to "nothing found". SeedDataError is
raised at startup when the seed resource cannot be used.
"""


class WalletError(Exception):
    """Base class for wallet service errors."""


class StoreUnavailableError(WalletError):
    """A backing document store could not be reached or timed out."""

    def __init__(self, backend: str, operation: str, cause: Exception = None):
        self.backend = backend
        self.operation = operation
        self.cause = cause
        message = f"{backend} store unavailable during {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class SeedDataError(WalletError):
    """The known-wallet seed resource is missing or malformed."""
