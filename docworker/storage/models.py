from dataclasses import dataclass, field
from urllib.parse import urlparse

from docworker.storage.exceptions import InvalidObjectRefError

SUPPORTED_SCHEMES = frozenset({"s3", "file"})


@dataclass(frozen=True)
class ObjectRef:
    """Location of an object: ``<scheme>://<container>/<key>``."""

    scheme: str
    container: str
    key: str

    @classmethod
    def parse(cls, ref: str) -> "ObjectRef":
        """Parse a reference string.

        Raises:
            InvalidObjectRefError: on unknown scheme, missing container or key.
        """
        parsed = urlparse(ref)
        if parsed.scheme not in SUPPORTED_SCHEMES:
            raise InvalidObjectRefError(f"Unsupported object reference '{ref}'")
        key = parsed.path.lstrip("/")
        if not parsed.netloc or not key:
            raise InvalidObjectRefError(f"Object reference '{ref}' needs a container and key")
        return cls(scheme=parsed.scheme, container=parsed.netloc, key=key)

    @property
    def basename(self) -> str:
        return self.key.rsplit("/", 1)[-1]

    def sibling(self, container: str, key: str) -> "ObjectRef":
        """Reference in the same scheme, for derived assets."""
        return ObjectRef(scheme=self.scheme, container=container, key=key)

    def __str__(self) -> str:
        return f"{self.scheme}://{self.container}/{self.key}"


@dataclass(frozen=True)
class StoredObject:
    """Object body plus the headers the store keeps alongside it."""

    body: bytes
    content_type: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
