from pathlib import Path
from typing import Any, ClassVar

import boto3

from docworker.config.settings import Settings
from docworker.storage.base import BaseObjectStore
from docworker.storage.local_adapter import LocalObjectStore
from docworker.storage.s3_adapter import S3ObjectStore


def build_aws_client(service: str, settings: Settings) -> Any:
    """Create a boto3 client for ``service`` honoring region and endpoint overrides."""
    return boto3.client(
        service,
        region_name=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url or None,
    )


class ObjectStoreFactory:
    """Creates the configured object store adapter."""

    STORES: ClassVar[tuple[str, ...]] = ("s3", "local")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStore:
        store = settings.object_store.lower()
        if store == "s3":
            return S3ObjectStore(build_aws_client("s3", settings))
        if store == "local":
            return LocalObjectStore(root=Path(settings.local_store_root))
        raise ValueError(f"Unknown object store '{store}'. Choose from: {list(cls.STORES)}")
