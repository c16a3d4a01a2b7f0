import logging
from dataclasses import dataclass
from typing import List

from ..ports.image_record_repo import ImageRecordRepository, ImageMetadata
from ..validation import validate_image_id

logger = logging.getLogger(__name__)


@dataclass
class ImageCatalogService:
    image_repo: ImageRecordRepository

    def list_images(self) -> List[ImageMetadata]:
        return self.image_repo.list()

    def delete_image(self, image_id: str) -> None:
        image_id = validate_image_id(image_id)
        self.image_repo.delete(image_id)
        logger.info(f"Deleted image {image_id}")
