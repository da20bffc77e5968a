from typing import Optional


class DatastoreError(Exception):
    """Base class for errors raised by the datastore layer itself."""
    pass


class NotFoundError(DatastoreError):
    """
    Raised when a key has no value.

    `size` carries the sentinel -1 reported by get_size for missing keys.
    """

    def __init__(self, key: Optional[str] = None, size: int = -1):
        message = "datastore: key not found"
        if key is not None:
            message = f"{message}: {key}"
        super().__init__(message)
        self.key = key
        self.size = size


class UnsupportedQueryError(DatastoreError):
    """Raised for query shapes the datastore cannot serve (orders, filters)."""
    pass
