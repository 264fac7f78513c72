"""Open Food Facts product models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class FoodProduct(BaseModel):
    """A product record from an Open Food Facts search or lookup."""

    code: str = ""
    name: Optional[str] = None
    brand: Optional[str] = None
    categories: Optional[str] = None  # comma-separated, as returned by OFF
    ingredients_text: Optional[str] = None
    nutriments: dict = Field(default_factory=dict)  # raw OFF nutriment map
    image_url: Optional[str] = None


class NutritionRecord(BaseModel):
    """Macros per 100g for a single ingredient.

    Only produced when the catalog has calories, protein, fat and
    carbohydrates; fiber and sugar default to 0 when absent.
    """

    calories: float
    protein: float
    fat: float
    carbohydrates: float
    fiber: float = 0
    sugar: float = 0


class RecipeMatch(BaseModel):
    """A catalog product whose ingredient text overlaps the user's pantry."""

    recipe_name: str
    matching_ingredients: list[str] = Field(default_factory=list)
    additional_ingredients: list[str] = Field(default_factory=list)
    confidence: float


class ProductSummary(BaseModel):
    """Trimmed product view for the search test endpoint."""

    code: str
    name: Optional[str] = None
    brands: Optional[str] = None
    categories: Optional[str] = None
    image_url: Optional[str] = None
    has_nutrition: bool = False
