"""Decoding of S3 ``ObjectCreated`` notifications into upload events."""

import json
from datetime import datetime
from typing import Any
from urllib.parse import unquote_plus

from docworker.pipeline.models import UploadEvent


class NotificationFormatError(ValueError):
    """Raised when a message body is not an S3 notification."""


def parse_s3_notification(body: str | dict[str, Any], receipt: str | None = None) -> list[UploadEvent]:
    """Turn an S3 notification document into upload events.

    Test events and non ObjectCreated records are skipped. Object keys arrive
    URL-encoded with ``+`` for spaces.

    Raises:
        NotificationFormatError: if the body is not valid notification JSON.
    """
    if isinstance(body, str):
        try:
            document = json.loads(body)
        except json.JSONDecodeError as exc:
            raise NotificationFormatError(f"Invalid notification JSON: {exc}") from exc
    else:
        document = body
    if not isinstance(document, dict):
        raise NotificationFormatError("Notification must be a JSON object")
    if document.get("Event") == "s3:TestEvent":
        return []

    records = document.get("Records")
    if not isinstance(records, list):
        raise NotificationFormatError("Notification has no 'Records' list")

    events: list[UploadEvent] = []
    for record in records:
        if not isinstance(record, dict):
            continue
        if not str(record.get("eventName", "")).startswith("ObjectCreated"):
            continue
        s3 = record.get("s3") or {}
        bucket = (s3.get("bucket") or {}).get("name")
        key = (s3.get("object") or {}).get("key")
        if not bucket or not key:
            raise NotificationFormatError("ObjectCreated record without bucket or key")
        events.append(
            UploadEvent(
                object_ref=f"s3://{bucket}/{unquote_plus(key)}",
                uploaded_at=_event_time(record.get("eventTime")),
                receipt=receipt,
            )
        )
    return events


def _event_time(raw: Any) -> datetime | None:
    if not isinstance(raw, str):
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
