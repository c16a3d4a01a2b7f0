# image_vault/schemas/images/image.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

class ImageMetadataResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    originalName: str
    mimeType: str
    size: int
    uploadDate: datetime

class ImageListResponse(BaseModel):
    images: List[ImageMetadataResponse]

class UploadResponse(BaseModel):
    message: str
    image: ImageMetadataResponse

class DecryptRequest(BaseModel):
    key: Optional[str] = Field(default=None, repr=False)
