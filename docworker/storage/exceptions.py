class ObjectStoreError(Exception):
    """Raised when the object store cannot serve a request."""


class ObjectNotFoundError(ObjectStoreError):
    """Raised when no object exists at the requested reference."""


class ObjectWriteError(ObjectStoreError):
    """Raised when an object cannot be written."""


class InvalidObjectRefError(ObjectStoreError):
    """Raised when a reference string cannot be parsed."""
