"""In-memory map from opaque upload ids to the collections they created.

Entries are never evicted, so the map grows with every upload for the
lifetime of the process.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from docsearch.errors import UnknownUploadId


class UploadStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class UploadRecord(BaseModel):
    upload_id: str
    collection: str
    filename: str = ""
    status: UploadStatus = UploadStatus.PENDING
    error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UploadRegistry:
    """Thread-safe id → :class:`UploadRecord` map shared by all requests."""

    def __init__(self) -> None:
        self._records: dict[str, UploadRecord] = {}
        self._lock = threading.Lock()

    def register(self, collection: str, filename: str = "") -> str:
        upload_id = uuid4().hex
        with self._lock:
            self._records[upload_id] = UploadRecord(
                upload_id=upload_id, collection=collection, filename=filename
            )
        return upload_id

    def resolve(self, upload_id: str) -> UploadRecord:
        with self._lock:
            record = self._records.get(upload_id)
        if record is None:
            raise UnknownUploadId(upload_id)
        return record

    def mark_ready(self, upload_id: str) -> None:
        self._update(upload_id, status=UploadStatus.READY, error=None)

    def mark_failed(self, upload_id: str, error: str) -> None:
        self._update(upload_id, status=UploadStatus.FAILED, error=error)

    def _update(self, upload_id: str, **changes: object) -> None:
        with self._lock:
            record = self._records.get(upload_id)
            if record is None:
                raise UnknownUploadId(upload_id)
            self._records[upload_id] = record.model_copy(update=changes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
