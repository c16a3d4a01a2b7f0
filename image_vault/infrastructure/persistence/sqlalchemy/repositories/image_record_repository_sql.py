import logging
from typing import List
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlmodel import Session, select

from .....db.models import EncryptedImage
from .....application.ports.image_record_repo import (
    ImageRecordRepository,
    ImageMetadata,
    ImageRecord,
    NewImage,
)
from .....exceptions import NotFound, StorageUnavailable

logger = logging.getLogger(__name__)


class SqlImageRecordRepository(ImageRecordRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_record(self, row: EncryptedImage) -> ImageRecord:
        return ImageRecord(
            id=row.id,
            original_name=row.original_name,
            mime_type=row.mime_type,
            size=row.size,
            upload_date=row.upload_date,
            iv=row.iv,
            ciphertext=row.ciphertext,
            kdf_salt=row.kdf_salt,
            kdf_iterations=row.kdf_iterations,
        )

    def _unavailable(self, op: str, exc: Exception) -> StorageUnavailable:
        logger.error(f"Storage error during {op}: {exc.__class__.__name__}")
        return StorageUnavailable()

    def create(self, meta: NewImage, iv: bytes, ciphertext: bytes, kdf_salt: bytes, kdf_iterations: int) -> ImageMetadata:
        row = EncryptedImage(
            original_name=meta.original_name,
            mime_type=meta.mime_type,
            size=meta.size,
            iv=iv,
            ciphertext=ciphertext,
            kdf_salt=kdf_salt,
            kdf_iterations=kdf_iterations,
        )
        try:
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise self._unavailable("create", e) from e
        except BaseException:
            # Includes cancellation: nothing may stay pending in the session
            self.session.rollback()
            raise
        return self._to_record(row).metadata()

    def list(self) -> List[ImageMetadata]:
        # Select metadata columns only so blobs are never loaded for listing
        stmt = (
            select(
                EncryptedImage.id,
                EncryptedImage.original_name,
                EncryptedImage.mime_type,
                EncryptedImage.size,
                EncryptedImage.upload_date,
            )
            .order_by(EncryptedImage.upload_date.desc(), EncryptedImage.id)
        )
        try:
            rows = self.session.exec(stmt).all()
        except SQLAlchemyError as e:
            raise self._unavailable("list", e) from e
        return [
            ImageMetadata(id=r[0], original_name=r[1], mime_type=r[2], size=r[3], upload_date=r[4])
            for r in rows
        ]

    def get(self, image_id: str) -> ImageRecord:
        try:
            row = self.session.get(EncryptedImage, image_id)
        except SQLAlchemyError as e:
            raise self._unavailable("get", e) from e
        if row is None:
            raise NotFound()
        return self._to_record(row)

    def delete(self, image_id: str) -> None:
        try:
            row = self.session.get(EncryptedImage, image_id)
            if row is None:
                raise NotFound()
            self.session.delete(row)
            self.session.commit()
        except NotFound:
            raise
        except DBAPIError as e:
            self.session.rollback()
            raise self._unavailable("delete", e) from e
        except SQLAlchemyError as e:
            # StaleDataError and friends: another request deleted the row first
            self.session.rollback()
            logger.info(f"Concurrent delete lost the race for image {image_id}")
            raise NotFound() from e

    def ping(self) -> None:
        try:
            self.session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise self._unavailable("ping", e) from e
