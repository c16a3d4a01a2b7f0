from typing import List, Protocol
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class NewImage:
    original_name: str
    mime_type: str
    size: int


@dataclass(frozen=True)
class ImageMetadata:
    id: str
    original_name: str
    mime_type: str
    size: int
    upload_date: datetime


@dataclass(frozen=True)
class ImageRecord:
    id: str
    original_name: str
    mime_type: str
    size: int
    upload_date: datetime
    iv: bytes = field(repr=False)
    ciphertext: bytes = field(repr=False)
    kdf_salt: bytes = field(repr=False)
    kdf_iterations: int = 0

    def metadata(self) -> ImageMetadata:
        return ImageMetadata(
            id=self.id,
            original_name=self.original_name,
            mime_type=self.mime_type,
            size=self.size,
            upload_date=self.upload_date,
        )


class ImageRecordRepository(Protocol):
    def create(self, meta: NewImage, iv: bytes, ciphertext: bytes, kdf_salt: bytes, kdf_iterations: int) -> ImageMetadata:
        ...

    def list(self) -> List[ImageMetadata]:
        ...

    def get(self, image_id: str) -> ImageRecord:
        ...

    def delete(self, image_id: str) -> None:
        ...

    def ping(self) -> None:
        ...
