# Models package (re-export feature modules for stable imports)
from .media.image import EncryptedImage

__all__ = [
    "EncryptedImage",
]
