from abc import ABC, abstractmethod

from docworker.storage.models import StoredObject


class BaseObjectStore(ABC):
    """Contract for all object store adapters."""

    @abstractmethod
    def get(self, ref: str) -> StoredObject:
        """Read an object and its headers.

        Raises:
            ObjectNotFoundError: if nothing exists at ``ref``.
            ObjectStoreError: on any other read failure.
        """

    @abstractmethod
    def put(self, ref: str, body: bytes, content_type: str) -> str:
        """Write an object and return its reference.

        Raises:
            ObjectWriteError: if the write fails.
        """
