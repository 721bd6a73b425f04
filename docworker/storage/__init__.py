from docworker.storage.base import BaseObjectStore
from docworker.storage.factory import ObjectStoreFactory
from docworker.storage.models import ObjectRef, StoredObject

__all__ = ["BaseObjectStore", "ObjectRef", "ObjectStoreFactory", "StoredObject"]
