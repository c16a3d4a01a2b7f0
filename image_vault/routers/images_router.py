from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlmodel import Session
from typing import Iterator, Optional
from urllib.parse import quote
import logging

from ..config import settings
from ..database import engine
from ..application.ports.image_record_repo import ImageMetadata, ImageRecordRepository
from ..application.services.catalog_service import ImageCatalogService
from ..application.services.decryption_service import DecryptionService
from ..application.services.encryption_service import EncryptionService, PlainUpload
from ..infrastructure.persistence.memory.image_record_repository_memory import InMemoryImageRecordRepository
from ..infrastructure.persistence.sqlalchemy.repositories.image_record_repository_sql import SqlImageRecordRepository
from ..schemas.images.image import (
    DecryptRequest,
    ImageListResponse,
    ImageMetadataResponse,
    UploadResponse,
)
from ..schemas.common.common import ErrorResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Images"])

_error_responses = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

_memory_repo = InMemoryImageRecordRepository()


def get_image_repository() -> Iterator[ImageRecordRepository]:
    if settings.STORAGE_BACKEND == "memory":
        yield _memory_repo
        return
    with Session(engine) as session:
        yield SqlImageRecordRepository(session)

def get_encryption_service(repo: ImageRecordRepository = Depends(get_image_repository)) -> EncryptionService:
    return EncryptionService(
        image_repo=repo,
        kdf_iterations=settings.KDF_ITERATIONS,
        min_passphrase_length=settings.MIN_PASSPHRASE_LENGTH,
        max_file_size=settings.MAX_FILE_SIZE,
    )

def get_decryption_service(repo: ImageRecordRepository = Depends(get_image_repository)) -> DecryptionService:
    return DecryptionService(image_repo=repo)

def get_catalog_service(repo: ImageRecordRepository = Depends(get_image_repository)) -> ImageCatalogService:
    return ImageCatalogService(image_repo=repo)


def _to_response(meta: ImageMetadata) -> ImageMetadataResponse:
    return ImageMetadataResponse(
        id=meta.id,
        originalName=meta.original_name,
        mimeType=meta.mime_type,
        size=meta.size,
        uploadDate=meta.upload_date,
    )

def _content_disposition(filename: str) -> str:
    # ASCII fallback plus RFC 5987 form for non-ASCII names
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'").replace("?", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.post("/upload", response_model=UploadResponse, status_code=201, responses=_error_responses)
def upload_image(
    image: Optional[UploadFile] = File(None),
    key: Optional[str] = Form(None),
    service: EncryptionService = Depends(get_encryption_service),
):
    upload = None
    if image is not None:
        try:
            # Read at most one byte past the limit; the service rejects oversize payloads
            data = image.file.read(settings.MAX_FILE_SIZE + 1)
            upload = PlainUpload(filename=image.filename, content_type=image.content_type, data=data)
        finally:
            # The multipart parser may have spooled the plaintext to a temp file
            image.file.close()
    created = service.encrypt_upload(upload, key)
    return UploadResponse(
        message="Image encrypted and stored successfully",
        image=_to_response(created),
    )


@router.get("/images", response_model=ImageListResponse)
def list_images(service: ImageCatalogService = Depends(get_catalog_service)):
    return ImageListResponse(images=[_to_response(m) for m in service.list_images()])


@router.post("/decrypt/{image_id}", responses=_error_responses)
def decrypt_image(
    image_id: str,
    payload: DecryptRequest,
    service: DecryptionService = Depends(get_decryption_service),
):
    result = service.decrypt_image(image_id, payload.key)
    return Response(
        content=result.data,
        media_type=result.mime_type,
        headers={"Content-Disposition": _content_disposition(result.original_name)},
    )


@router.delete("/images/{image_id}", response_model=MessageResponse, responses=_error_responses)
def delete_image(image_id: str, service: ImageCatalogService = Depends(get_catalog_service)):
    service.delete_image(image_id)
    return MessageResponse(message="Image deleted successfully")
