import mimetypes
import os
import tempfile
from pathlib import Path

from docworker.storage.base import BaseObjectStore
from docworker.storage.exceptions import (
    InvalidObjectRefError,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectWriteError,
)
from docworker.storage.models import ObjectRef, StoredObject


def object_file_path(root: Path, location: ObjectRef) -> Path:
    """Build path to object file: {root}/{container}/{key}"""
    path = (root / location.container / location.key).resolve()
    if not path.is_relative_to(root.resolve()):
        raise InvalidObjectRefError(f"Object reference escapes store root: {location}")
    return path


class LocalObjectStore(BaseObjectStore):
    """Object store on the local filesystem, for development and tests."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, root: Path | None = None) -> None:
        self._root = root if root is not None else self.FILES_ROOT

    def get(self, ref: str) -> StoredObject:
        """Read object bytes from disk.

        Raises:
            ObjectNotFoundError: if the file does not exist at resolved path.
            ObjectStoreError: if the file exists but cannot be read.
        """
        location = self._resolve(ref)
        path = object_file_path(self._root, location)
        if not path.is_file():
            raise ObjectNotFoundError(f"File not found: {path}")
        try:
            body = path.read_bytes()
        except OSError as exc:
            raise ObjectStoreError(f"Failed to read {path}: {exc}") from exc
        content_type, encoding = mimetypes.guess_type(path.name)
        metadata = {"filename": path.name}
        if encoding:
            metadata["encoding"] = encoding
        return StoredObject(body=body, content_type=content_type, metadata=metadata)

    def put(self, ref: str, body: bytes, content_type: str) -> str:
        """Write the object through a temp file so readers never see partial bytes."""
        location = self._resolve(ref)
        path = object_file_path(self._root, location)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "wb") as handle:
                handle.write(body)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise ObjectWriteError(f"Failed to write {path}: {exc}") from exc
        return str(location)

    @staticmethod
    def _resolve(ref: str) -> ObjectRef:
        location = ObjectRef.parse(ref)
        if location.scheme != "file":
            raise InvalidObjectRefError(f"LocalObjectStore cannot serve '{ref}'")
        return location
