import uuid
from typing import Optional

from ..exceptions import InvalidInput


def validate_image_id(image_id: Optional[str]) -> str:
    """Image ids are canonical UUID strings; anything else is rejected before touching storage."""
    if not image_id:
        raise InvalidInput("Image id is required")
    try:
        parsed = uuid.UUID(image_id)
    except (ValueError, AttributeError, TypeError):
        raise InvalidInput("Malformed image id") from None
    if str(parsed) != image_id.lower():
        raise InvalidInput("Malformed image id")
    return str(parsed)
