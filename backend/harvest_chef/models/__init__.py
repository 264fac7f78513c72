"""Pydantic models for harvest-chef API."""

from .food_data import (
    FoodProduct,
    NutritionRecord,
    RecipeMatch,
    ProductSummary,
)
from .ingredients import (
    Ingredient,
    IdentifiedIngredient,
)
from .recipes import (
    DietaryCategory,
    Difficulty,
    SourceInfo,
    RecipeIdea,
    Recipe,
    recipe_id,
)
from .nutrition import (
    MacroEstimate,
    IngredientNutrition,
    NutritionalAnalysis,
    NutritionalEstimate,
)
from .session import KitchenSession

__all__ = [
    # Food data
    "FoodProduct",
    "NutritionRecord",
    "RecipeMatch",
    "ProductSummary",
    # Ingredients
    "Ingredient",
    "IdentifiedIngredient",
    # Recipes
    "DietaryCategory",
    "Difficulty",
    "SourceInfo",
    "RecipeIdea",
    "Recipe",
    "recipe_id",
    # Nutrition
    "MacroEstimate",
    "IngredientNutrition",
    "NutritionalAnalysis",
    "NutritionalEstimate",
    # Session
    "KitchenSession",
]
