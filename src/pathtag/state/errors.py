"""Entity store errors."""


class StoreError(Exception):
    """Base exception for entity store operations."""


class MissingStoreError(StoreError):
    """Raised when a read-only command targets a database that does not exist."""
