"""
Open Food Facts endpoints.

The two /api/test-* routes exist for manual verification of the catalog
integration. Both answer 400 on a missing parameter, 500 on an unexpected
failure, otherwise 200 with a {success, ...} envelope.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from harvest_chef.api.deps import get_food_data_service
from harvest_chef.models.food_data import ProductSummary
from harvest_chef.services.food_data import FoodDataService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["food-data"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@router.post("/api/test-nutrition")
async def test_nutrition(
    request: Request,
    food_data: FoodDataService = Depends(get_food_data_service),
):
    """Nutrition record for one ingredient, or null when the catalog has none."""
    try:
        body = await request.json()
    except ValueError:
        body = None

    ingredient = body.get("ingredient") if isinstance(body, dict) else None
    if not isinstance(ingredient, str) or not ingredient.strip():
        return _error(400, "Ingredient name is required")

    try:
        info = await food_data.get_nutritional_info(ingredient.strip())
    except Exception as e:
        logger.error(f"Error getting nutritional info for '{ingredient}': {e}", exc_info=True)
        return _error(500, "Failed to get nutritional information")

    return {
        "success": True,
        "ingredient": ingredient,
        "nutritional_info": info.model_dump() if info else None,
        "has_data": info is not None,
    }


@router.get("/api/test-open-food-facts")
async def test_open_food_facts(
    q: Optional[str] = Query(None, description="Search query"),
    limit: int = Query(5, ge=1, le=100),
    food_data: FoodDataService = Depends(get_food_data_service),
):
    """Simplified product list for a search query."""
    if not q or not q.strip():
        return _error(400, 'Query parameter "q" is required')

    try:
        products = await food_data.search_products(q, limit)
    except Exception as e:
        logger.error(f"Error searching Open Food Facts for '{q}': {e}", exc_info=True)
        return _error(500, "Failed to search Open Food Facts database")

    summaries = [
        ProductSummary(
            code=p.code,
            name=p.name,
            brands=p.brand,
            categories=p.categories,
            image_url=p.image_url,
            has_nutrition=bool(p.nutriments),
        )
        for p in products
    ]

    return {
        "success": True,
        "query": q,
        "count": len(summaries),
        "products": [s.model_dump() for s in summaries],
    }


@router.get("/api/food-data/product/{barcode}")
async def get_product(
    barcode: str,
    food_data: FoodDataService = Depends(get_food_data_service),
):
    """Look up a single product by barcode."""
    product = await food_data.get_product(barcode)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found in Open Food Facts")
    return product.model_dump()


@router.get("/api/food-data/alternatives")
async def get_alternatives(
    ingredient: str = Query(..., min_length=1),
    food_data: FoodDataService = Depends(get_food_data_service),
):
    """Category-based substitutes for an ingredient."""
    alternatives = await food_data.get_ingredient_alternatives(ingredient)
    return {"ingredient": ingredient, "alternatives": alternatives}
