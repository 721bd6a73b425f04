import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from docworker.storage.exceptions import (
    InvalidObjectRefError,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectWriteError,
)
from docworker.storage.s3_adapter import S3ObjectStore


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestS3Get:
    def test_returns_body_type_and_metadata(self) -> None:
        client = MagicMock()
        client.get_object.return_value = {
            "Body": io.BytesIO(b"%PDF-1.7"),
            "ContentType": "application/pdf",
            "Metadata": {"filename": "report.pdf"},
        }

        stored = S3ObjectStore(client).get("s3://uploads/in/report.pdf")

        client.get_object.assert_called_once_with(Bucket="uploads", Key="in/report.pdf")
        assert stored.body == b"%PDF-1.7"
        assert stored.content_type == "application/pdf"
        assert stored.metadata == {"filename": "report.pdf"}

    @pytest.mark.parametrize("code", ["NoSuchKey", "NoSuchBucket", "404"])
    def test_missing_object(self, code: str) -> None:
        client = MagicMock()
        client.get_object.side_effect = _client_error(code)

        with pytest.raises(ObjectNotFoundError):
            S3ObjectStore(client).get("s3://uploads/a.pdf")

    def test_access_denied_is_store_error(self) -> None:
        client = MagicMock()
        client.get_object.side_effect = _client_error("AccessDenied")

        with pytest.raises(ObjectStoreError) as exc_info:
            S3ObjectStore(client).get("s3://uploads/a.pdf")
        assert not isinstance(exc_info.value, ObjectNotFoundError)

    def test_connection_error_is_store_error(self) -> None:
        client = MagicMock()
        client.get_object.side_effect = EndpointConnectionError(endpoint_url="http://s3")

        with pytest.raises(ObjectStoreError):
            S3ObjectStore(client).get("s3://uploads/a.pdf")

    def test_rejects_file_reference(self) -> None:
        with pytest.raises(InvalidObjectRefError):
            S3ObjectStore(MagicMock()).get("file://uploads/a.pdf")


class TestS3Put:
    def test_writes_object_and_returns_ref(self) -> None:
        client = MagicMock()

        ref = S3ObjectStore(client).put("s3://assets/thumbnails/d.png", b"png", "image/png")

        assert ref == "s3://assets/thumbnails/d.png"
        client.put_object.assert_called_once_with(
            Bucket="assets", Key="thumbnails/d.png", Body=b"png", ContentType="image/png"
        )

    def test_failure_is_write_error(self) -> None:
        client = MagicMock()
        client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

        with pytest.raises(ObjectWriteError):
            S3ObjectStore(client).put("s3://assets/x.png", b"png", "image/png")
