"""
Nutrition API endpoints.

/enhanced-analysis merges Open Food Facts data with AI estimates;
/analysis is the AI-only estimate.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from harvest_chef.api.deps import get_nutrition_reconciler
from harvest_chef.models.nutrition import (
    NutritionalAnalysis,
    NutritionalEstimate,
    NutritionAnalysisRequest,
)
from harvest_chef.services.nutrition import NutritionAnalysisError, NutritionReconciler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/nutrition", tags=["nutrition"])


@router.post("/enhanced-analysis", response_model=NutritionalAnalysis)
async def enhanced_analysis(
    body: NutritionAnalysisRequest,
    reconciler: NutritionReconciler = Depends(get_nutrition_reconciler),
):
    """Per-serving nutrition with per-ingredient breakdown and provenance."""
    try:
        return await reconciler.analyze(body.recipe_name, body.ingredients, body.serving_size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NutritionAnalysisError as e:
        logger.error(f"Nutrition analysis failed for '{body.recipe_name}': {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/analysis", response_model=NutritionalEstimate)
async def analysis(
    body: NutritionAnalysisRequest,
    reconciler: NutritionReconciler = Depends(get_nutrition_reconciler),
):
    """AI-only per-serving estimate."""
    try:
        return await reconciler.get_nutritional_analysis(body.recipe_name, body.ingredients)
    except NutritionAnalysisError as e:
        logger.error(f"Nutrition analysis failed for '{body.recipe_name}': {e}")
        raise HTTPException(status_code=502, detail=str(e))
