"""Ingredient identification endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from harvest_chef.api.deps import get_ingredient_identifier
from harvest_chef.models.ingredients import IdentifyIngredientsRequest, IdentifyIngredientsResponse
from harvest_chef.services.ai import AIServiceError, ContentBlockedError
from harvest_chef.services.ingredients import (
    IngredientIdentifier,
    InvalidImageError,
    decode_image_base64,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ingredients", tags=["ingredients"])


@router.post("/identify", response_model=IdentifyIngredientsResponse)
async def identify_ingredients(
    body: IdentifyIngredientsRequest,
    identifier: IngredientIdentifier = Depends(get_ingredient_identifier),
):
    """
    Identify ingredients in a photo.

    Returns a de-duplicated list; every entry has an id and a 0-1 confidence.
    """
    try:
        image_bytes = decode_image_base64(body.image_base64)
        ingredients = await identifier.identify(image_bytes, body.mime_type)
    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ContentBlockedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AIServiceError as e:
        logger.error(f"Ingredient identification failed: {e}")
        raise HTTPException(
            status_code=502,
            detail="Could not identify ingredients from the image. Please try another one.",
        )

    return IdentifyIngredientsResponse(ingredients=ingredients)
