from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from docworker.storage.base import BaseObjectStore
from docworker.storage.exceptions import (
    InvalidObjectRefError,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectWriteError,
)
from docworker.storage.models import ObjectRef, StoredObject

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})


class S3ObjectStore(BaseObjectStore):
    """Object store backed by Amazon S3 (or any S3-compatible endpoint)."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def get(self, ref: str) -> StoredObject:
        location = self._resolve(ref)
        try:
            response = self._client.get_object(Bucket=location.container, Key=location.key)
            body: bytes = response["Body"].read()
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object not found: {ref}") from exc
            raise ObjectStoreError(f"S3 get failed for {ref}: {exc}") from exc
        except BotoCoreError as exc:
            raise ObjectStoreError(f"S3 get failed for {ref}: {exc}") from exc
        return StoredObject(
            body=body,
            content_type=response.get("ContentType"),
            metadata=dict(response.get("Metadata") or {}),
        )

    def put(self, ref: str, body: bytes, content_type: str) -> str:
        location = self._resolve(ref)
        try:
            self._client.put_object(
                Bucket=location.container,
                Key=location.key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise ObjectWriteError(f"S3 put failed for {ref}: {exc}") from exc
        return str(location)

    @staticmethod
    def _resolve(ref: str) -> ObjectRef:
        location = ObjectRef.parse(ref)
        if location.scheme != "s3":
            raise InvalidObjectRefError(f"S3ObjectStore cannot serve '{ref}'")
        return location
