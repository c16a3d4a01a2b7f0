import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List

from ....application.ports.image_record_repo import (
    ImageRecordRepository,
    ImageMetadata,
    ImageRecord,
    NewImage,
)
from ....exceptions import NotFound


class InMemoryImageRecordRepository(ImageRecordRepository):
    """Process-local store. Records are immutable, so readers get whole records or nothing."""

    def __init__(self) -> None:
        self._store: Dict[str, ImageRecord] = {}
        self._lock = threading.Lock()

    def create(self, meta: NewImage, iv: bytes, ciphertext: bytes, kdf_salt: bytes, kdf_iterations: int) -> ImageMetadata:
        record = ImageRecord(
            id=str(uuid.uuid4()),
            original_name=meta.original_name,
            mime_type=meta.mime_type,
            size=meta.size,
            upload_date=datetime.now(timezone.utc),
            iv=bytes(iv),
            ciphertext=bytes(ciphertext),
            kdf_salt=bytes(kdf_salt),
            kdf_iterations=kdf_iterations,
        )
        with self._lock:
            self._store[record.id] = record
        return record.metadata()

    def list(self) -> List[ImageMetadata]:
        with self._lock:
            records = list(self._store.values())
        # newest first, id as tie-breaker (mirrors the SQL adapter)
        records.sort(key=lambda r: r.id)
        records.sort(key=lambda r: r.upload_date, reverse=True)
        return [r.metadata() for r in records]

    def get(self, image_id: str) -> ImageRecord:
        with self._lock:
            record = self._store.get(image_id)
        if record is None:
            raise NotFound()
        return record

    def delete(self, image_id: str) -> None:
        with self._lock:
            if self._store.pop(image_id, None) is None:
                raise NotFound()

    def ping(self) -> None:
        return None
