"""
Recipe nutrition: Open Food Facts data merged with AI estimates.

Ingredients the catalog knows are scaled by the portion factor and summed.
The ones it does not know are estimated together in a single model call.
When the catalog knows none of them, the whole recipe is estimated instead.
"""

import asyncio
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from harvest_chef.config import get_settings
from harvest_chef.models.food_data import NutritionRecord
from harvest_chef.models.nutrition import (
    IngredientNutrition,
    MacroEstimate,
    NutritionalAnalysis,
    NutritionalEstimate,
)
from harvest_chef.services.ai import AIService, AIServiceError
from harvest_chef.services.food_data import FoodDataService

logger = logging.getLogger(__name__)
settings = get_settings()

MACROS = ("calories", "protein", "fat", "carbohydrates", "fiber", "sugar")

AI_ONLY_SOURCE = "AI estimation only"
AI_ONLY_DISCLAIMER = (
    "Nutritional information is an AI-generated estimate for the whole recipe. "
    "Values are approximate and may vary based on preparation methods, portion sizes, "
    "and specific product brands. This information is not intended as a substitute "
    "for professional dietary advice."
)


class NutritionAnalysisError(Exception):
    """No usable nutrition data could be produced."""


def round_half_up(value: float, places: int = 0) -> float:
    """Round like a person would: .5 always goes up."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_grams(value: float) -> str:
    text = f"{round_half_up(value, 1):.1f}".rstrip("0").rstrip(".")
    return f"{text}g"


def format_calories(value: float) -> str:
    return f"{int(round_half_up(value))} kcal"


class NutritionReconciler:
    """Builds a per-serving NutritionalAnalysis for a recipe."""

    def __init__(self, food_data: FoodDataService, ai: AIService, portion_factor: Optional[float] = None):
        self.food_data = food_data
        self.ai = ai
        self.portion_factor = settings.portion_factor if portion_factor is None else portion_factor

    async def analyze(self, recipe_name: str, ingredients: list[str], serving_size: int = 1) -> NutritionalAnalysis:
        """
        Per-serving nutrition for a recipe.

        Raises:
            ValueError: serving_size below 1
            NutritionAnalysisError: an AI estimate needed for the totals failed
        """
        if serving_size < 1:
            raise ValueError("serving_size must be at least 1")

        records = await asyncio.gather(*(self.food_data.get_nutritional_info(i) for i in ingredients))

        totals = dict.fromkeys(MACROS, 0.0)
        breakdown: list[IngredientNutrition] = []
        missing: list[str] = []

        for ingredient, record in zip(ingredients, records):
            if record is None:
                missing.append(ingredient)
                breakdown.append(IngredientNutrition(ingredient=ingredient, data_available=False))
                continue

            scaled = self._scale(record)
            for macro in MACROS:
                totals[macro] += scaled[macro]
            breakdown.append(
                IngredientNutrition(
                    ingredient=ingredient,
                    calories=round_half_up(scaled["calories"]),
                    protein=round_half_up(scaled["protein"], 1),
                    fat=round_half_up(scaled["fat"], 1),
                    carbohydrates=round_half_up(scaled["carbohydrates"], 1),
                    data_available=True,
                )
            )

        data_sources_count = len(ingredients) - len(missing)

        if data_sources_count == 0:
            estimate = await self._estimate(self.ai.estimate_recipe_nutrition(recipe_name, ingredients))
            return self._build(
                self._add(totals, estimate),
                serving_size,
                data_source=AI_ONLY_SOURCE,
                data_sources_count=0,
                breakdown=breakdown,
                disclaimer=AI_ONLY_DISCLAIMER,
            )

        data_source = f"Open Food Facts database ({data_sources_count}/{len(ingredients)} ingredients)"
        if missing:
            estimate = await self._estimate(self.ai.estimate_ingredients_nutrition(missing, recipe_name))
            totals = self._add(totals, estimate)
            data_source += " + AI estimation"
            disclaimer = (
                f"Nutritional information is based on {data_sources_count} ingredients from the "
                "Open Food Facts database and AI estimation for the remaining ingredients. "
            )
        else:
            disclaimer = (
                f"Nutritional information is based on {data_sources_count} ingredients from the "
                "Open Food Facts database. "
            )
        disclaimer += (
            "Values are approximate and may vary based on preparation methods, portion sizes, "
            "and specific product brands. This information is not intended as a substitute "
            "for professional dietary advice."
        )

        return self._build(
            totals,
            serving_size,
            data_source=data_source,
            data_sources_count=data_sources_count,
            breakdown=breakdown,
            disclaimer=disclaimer,
        )

    async def get_nutritional_analysis(self, recipe_name: str, ingredients: list[str]) -> NutritionalEstimate:
        """AI-only per-serving estimate, as phrased by the model."""
        try:
            return await self.ai.get_nutritional_analysis(recipe_name, ingredients)
        except AIServiceError as e:
            raise NutritionAnalysisError("Failed to get nutritional analysis from the AI service.") from e

    # =========================================================================
    # Helpers
    # =========================================================================

    def _scale(self, record: NutritionRecord) -> dict[str, float]:
        return {macro: getattr(record, macro) * self.portion_factor for macro in MACROS}

    def _add(self, totals: dict[str, float], estimate: MacroEstimate) -> dict[str, float]:
        return {macro: totals[macro] + getattr(estimate, macro) for macro in MACROS}

    async def _estimate(self, call) -> MacroEstimate:
        try:
            return await call
        except AIServiceError as e:
            logger.error(f"AI nutrition estimate failed: {e}")
            raise NutritionAnalysisError("Failed to estimate nutrition for this recipe.") from e

    def _build(
        self,
        totals: dict[str, float],
        serving_size: int,
        *,
        data_source: str,
        data_sources_count: int,
        breakdown: list[IngredientNutrition],
        disclaimer: str,
    ) -> NutritionalAnalysis:
        per_serving = {macro: totals[macro] / serving_size for macro in MACROS}

        return NutritionalAnalysis(
            calories=format_calories(per_serving["calories"]),
            protein=format_grams(per_serving["protein"]),
            fat=format_grams(per_serving["fat"]),
            carbohydrates=format_grams(per_serving["carbohydrates"]),
            fiber=format_grams(per_serving["fiber"]),
            sugar=format_grams(per_serving["sugar"]),
            serving_size="1 serving" if serving_size == 1 else f"{serving_size} servings",
            data_source=data_source,
            data_sources_count=data_sources_count,
            ingredient_breakdown=breakdown,
            disclaimer=disclaimer,
        )
