class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class StoreError(Exception):
    """Base class for infrastructure failures while talking to the contact store."""

    code = "store.error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreUnavailableError(StoreError):
    """The database could not be opened, read or written."""

    code = "store.unavailable"


class TransactionConflictError(StoreError):
    """Another transaction held the database lock past the busy timeout."""

    code = "store.conflict"
