# image_vault/db/models/media/image.py
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
import uuid
from sqlalchemy import Column, DateTime, LargeBinary

class EncryptedImage(SQLModel, table=True):
    __tablename__ = "encrypted_images"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    original_name: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    size: int  # plaintext length
    upload_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
        index=True,
    )
    # iv, ciphertext and the KDF parameters are written together by one insert and never updated
    iv: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    ciphertext: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    kdf_salt: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    kdf_iterations: int
