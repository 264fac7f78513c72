"""Recipe models."""

from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DietaryCategory(str, Enum):
    VEGETARIAN = "Vegetarian"
    EGGETARIAN = "Eggetarian"
    NON_VEGETARIAN = "Non-Vegetarian"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class SourceInfo(BaseModel):
    """Where a suggestion came from and how much of the pantry it uses."""

    from_open_food_facts: bool = False
    confidence: float = 0
    matching_ingredients: int = 0


class RecipeIdea(BaseModel):
    """Recipe text from the model, before its image is rendered."""

    name: str
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    estimated_cooking_time: str = ""
    dietary_category: DietaryCategory = DietaryCategory.VEGETARIAN
    difficulty: Optional[Difficulty] = None
    cuisine: Optional[str] = None
    nutritional_highlights: list[str] = Field(default_factory=list)
    image_prompt: str = ""


class Recipe(BaseModel):
    """A finished recipe suggestion."""

    id: str
    name: str
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    image_url: str
    estimated_cooking_time: str = ""
    dietary_category: DietaryCategory = DietaryCategory.VEGETARIAN
    difficulty: Optional[Difficulty] = None
    cuisine: Optional[str] = None
    nutritional_highlights: list[str] = Field(default_factory=list)
    source_info: Optional[SourceInfo] = None


def recipe_id(name: str, ingredients: list[str], instructions: list[str]) -> str:
    """Content-derived recipe id.

    Two recipes that share a display name but differ in ingredients or steps
    get different ids; regenerating the exact same recipe gives the same id.
    """
    payload = json.dumps(
        {
            "name": name.strip().lower(),
            "ingredients": [i.strip().lower() for i in ingredients],
            "instructions": [s.strip() for s in instructions],
        },
        sort_keys=True,
    )
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


# =============================================================================
# Requests
# =============================================================================


class SuggestRecipesRequest(BaseModel):
    ingredients: list[str] = Field(..., min_length=1)


class FindRecipesByNameRequest(BaseModel):
    query: str


class EnhancedSuggestionsRequest(BaseModel):
    ingredients: list[str] = Field(..., min_length=1)
    use_open_food_facts: bool = True
    preferred_cuisine: Optional[str] = None
    dietary_restrictions: list[str] = Field(default_factory=list)


class RecipeListResponse(BaseModel):
    count: int
    recipes: list[Recipe] = Field(default_factory=list)
