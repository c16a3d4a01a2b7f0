import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..ports.image_record_repo import ImageRecordRepository, ImageMetadata, NewImage
from ...crypto import cipher
from ...crypto.key_derivation import derive_key, new_salt
from ...exceptions import ImageVaultError, InvalidInput, PayloadTooLarge

logger = logging.getLogger(__name__)


class EncryptionState(str, Enum):
    RECEIVED = "received"
    DERIVING = "deriving"
    ENCRYPTING = "encrypting"
    PERSISTING = "persisting"
    DONE = "done"


@dataclass
class PlainUpload:
    filename: Optional[str]
    content_type: Optional[str]
    data: Optional[bytes]


@dataclass
class EncryptionService:
    image_repo: ImageRecordRepository
    kdf_iterations: int
    min_passphrase_length: int = 8
    max_file_size: Optional[int] = None

    def _validate(self, upload: Optional[PlainUpload], passphrase: Optional[str]) -> None:
        if upload is None or upload.data is None:
            raise InvalidInput("Please select an image file")
        if len(upload.data) == 0:
            raise InvalidInput("Uploaded file is empty")
        if self.max_file_size is not None and len(upload.data) > self.max_file_size:
            raise PayloadTooLarge(f"File too large (max {self.max_file_size // (1024 * 1024)}MB)")
        if not passphrase or len(passphrase) < self.min_passphrase_length:
            raise InvalidInput(f"Encryption key must be at least {self.min_passphrase_length} characters")

    def encrypt_upload(self, upload: PlainUpload, passphrase: str) -> ImageMetadata:
        state = EncryptionState.RECEIVED
        try:
            self._validate(upload, passphrase)
            plaintext = upload.data
            meta = NewImage(
                original_name=upload.filename or "image",
                mime_type=upload.content_type or "application/octet-stream",
                size=len(plaintext),
            )

            state = EncryptionState.DERIVING
            salt = new_salt()
            key = derive_key(passphrase, salt, self.kdf_iterations)

            state = EncryptionState.ENCRYPTING
            iv, ciphertext = cipher.encrypt(key, plaintext)
            del key

            state = EncryptionState.PERSISTING
            created = self.image_repo.create(meta, iv, ciphertext, salt, self.kdf_iterations)

            # Drop our references to the plaintext; the caller's buffer is its own to release
            plaintext = None
            upload.data = None
            state = EncryptionState.DONE
        except ImageVaultError as e:
            e.failed_state = state.value
            logger.info(f"Encryption failed in state {state.value}: {e.__class__.__name__}")
            raise
        except Exception:
            logger.error(f"Unexpected failure during encryption in state {state.value}")
            raise

        logger.info(f"Encrypted image stored with ID: {created.id} ({created.size} bytes)")
        return created
