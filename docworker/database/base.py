from abc import ABC, abstractmethod
from collections.abc import Mapping


class BaseDocumentStore(ABC):
    """Contract for the keyed store holding finished documents."""

    @abstractmethod
    def upsert(self, document_id: str, fields: Mapping[str, object]) -> None:
        """Create or replace the document atomically.

        Writing identical fields twice leaves the stored document unchanged.

        Raises:
            DocumentStoreError: on any store-layer failure.
        """
