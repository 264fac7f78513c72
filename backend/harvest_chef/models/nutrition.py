"""Nutritional analysis models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class MacroEstimate(BaseModel):
    """Numeric macro totals returned by an AI estimation call."""

    calories: float = 0
    protein: float = 0
    fat: float = 0
    carbohydrates: float = 0
    fiber: float = 0
    sugar: float = 0


class IngredientNutrition(BaseModel):
    """One ingredient's scaled contribution.

    All zeros with data_available=False means the catalog had no data and
    the ingredient was covered by AI estimation instead.
    """

    ingredient: str
    calories: float = 0
    protein: float = 0
    fat: float = 0
    carbohydrates: float = 0
    data_available: bool = False


class NutritionalAnalysis(BaseModel):
    """Per-serving analysis shown to the user."""

    calories: str
    protein: str
    fat: str
    carbohydrates: str
    fiber: str
    sugar: str
    serving_size: str
    data_source: str
    data_sources_count: int = 0
    ingredient_breakdown: list[IngredientNutrition] = Field(default_factory=list)
    disclaimer: str


class NutritionalEstimate(BaseModel):
    """AI-only estimate for a whole recipe, as phrased by the model."""

    calories: str
    protein: str
    fat: str
    carbohydrates: str
    fiber: str
    sugar: str
    serving_size: str
    disclaimer: str


class NutritionAnalysisRequest(BaseModel):
    recipe_name: str
    ingredients: list[str] = Field(..., min_length=1)
    serving_size: int = Field(1, ge=1)
