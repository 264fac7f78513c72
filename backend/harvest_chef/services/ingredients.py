"""
Ingredient identification from photos.

The vision model does the recognition; this module validates the upload,
then cleans the model's answer: one entry per case-insensitive name, every
entry with an id, confidences inside [0, 1].
"""

import base64
import binascii
import io
import logging
import uuid
from typing import Optional

from PIL import Image, UnidentifiedImageError

from harvest_chef.models.ingredients import IdentifiedIngredient, Ingredient
from harvest_chef.services.ai import AIService

logger = logging.getLogger(__name__)


class InvalidImageError(ValueError):
    """Upload is not a decodable image."""


def decode_image_base64(image_base64: str) -> bytes:
    """Decode a base64 payload, tolerating a data URI prefix."""
    if image_base64.startswith("data:") and "," in image_base64:
        image_base64 = image_base64.split(",", 1)[1]
    try:
        return base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError("Image is not valid base64") from e


def to_data_uri(image_bytes: bytes, mime_type: Optional[str] = None) -> str:
    """
    Verify the bytes decode as an image and wrap them in a data URI.

    The MIME type is taken from the decoded image when Pillow knows it,
    falling back to the one the client sent.
    """
    if not image_bytes:
        raise InvalidImageError("Image is empty")

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.verify()
            detected = Image.MIME.get(image.format or "")
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidImageError("Could not read the uploaded image") from e

    mime = detected or mime_type or "image/jpeg"
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def dedupe_ingredients(raw: list[IdentifiedIngredient]) -> list[Ingredient]:
    """
    First occurrence wins for each lower-cased name.

    Blank names are dropped, missing or repeated ids are replaced with a
    UUID and confidence is clamped into [0, 1].
    """
    seen: set[str] = set()
    seen_ids: set[str] = set()
    ingredients: list[Ingredient] = []

    for item in raw:
        name = item.name.strip()
        key = name.lower()
        if not key or key in seen:
            continue
        seen.add(key)

        ingredient_id = (item.id or "").strip()
        if not ingredient_id or ingredient_id in seen_ids:
            ingredient_id = str(uuid.uuid4())
        seen_ids.add(ingredient_id)

        ingredients.append(
            Ingredient(
                id=ingredient_id,
                name=name,
                confidence=min(1.0, max(0.0, item.confidence)),
            )
        )

    return ingredients


class IngredientIdentifier:
    """Photo -> clean ingredient list."""

    def __init__(self, ai: AIService):
        self.ai = ai

    async def identify(self, image_bytes: bytes, mime_type: Optional[str] = None) -> list[Ingredient]:
        """
        Identify ingredients in a photo.

        Raises:
            InvalidImageError: the upload is not an image
            AIServiceError: the model call failed
        """
        data_uri = to_data_uri(image_bytes, mime_type)
        raw = await self.ai.identify_ingredients(data_uri)
        ingredients = dedupe_ingredients(raw)

        logger.info(f"Identified {len(ingredients)} ingredients ({len(raw) - len(ingredients)} duplicates dropped)")
        return ingredients
