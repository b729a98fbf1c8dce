class StorageError(Exception):
    """Base exception for attendance store failures."""


class StorageUnavailable(StorageError):
    """Raised when the storage backend cannot be opened or initialized."""


class ReadFailure(StorageError):
    """Raised when a lookup or scan against an opened store fails."""


class WriteFailure(StorageError):
    """Raised when an upsert against an opened store fails."""


class DeleteFailure(StorageError):
    """Raised when a delete against an opened store fails."""
