class DocumentStoreError(Exception):
    """Raised when the document store rejects a read or write."""
