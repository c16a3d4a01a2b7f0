import logging
from dataclasses import dataclass, field
from enum import Enum

from ..ports.image_record_repo import ImageRecordRepository
from ..validation import validate_image_id
from ...crypto import cipher
from ...crypto.key_derivation import derive_key
from ...exceptions import DecryptionFailed, ImageVaultError, InvalidInput, MalformedCiphertext

logger = logging.getLogger(__name__)


class DecryptionState(str, Enum):
    REQUESTED = "requested"
    LOADING = "loading"
    DERIVING = "deriving"
    DECRYPTING = "decrypting"
    DONE = "done"


@dataclass
class DecryptedImage:
    data: bytes = field(repr=False)
    original_name: str
    mime_type: str


@dataclass
class DecryptionService:
    image_repo: ImageRecordRepository

    def decrypt_image(self, image_id: str, passphrase: str) -> DecryptedImage:
        state = DecryptionState.REQUESTED
        try:
            image_id = validate_image_id(image_id)
            if not passphrase:
                raise InvalidInput("Please enter decryption key")

            state = DecryptionState.LOADING
            record = self.image_repo.get(image_id)

            state = DecryptionState.DERIVING
            key = derive_key(passphrase, record.kdf_salt, record.kdf_iterations)

            state = DecryptionState.DECRYPTING
            try:
                plaintext = cipher.decrypt(key, record.iv, record.ciphertext)
            except MalformedCiphertext:
                logger.warning(f"Stored ciphertext for image {image_id} is structurally invalid")
                raise DecryptionFailed() from None
            finally:
                del key
            state = DecryptionState.DONE
        except DecryptionFailed as e:
            e.failed_state = state.value
            logger.info(f"Decryption rejected for image {image_id}")
            raise
        except ImageVaultError as e:
            e.failed_state = state.value
            logger.info(f"Decryption failed in state {state.value}: {e.__class__.__name__}")
            raise

        logger.info(f"Decrypted image {image_id} for download")
        return DecryptedImage(data=plaintext, original_name=record.original_name, mime_type=record.mime_type)
