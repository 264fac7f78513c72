"""Kitchen session models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .ingredients import Ingredient
from .recipes import Recipe


class KitchenSession(BaseModel):
    """Working state for one client: pantry list and current suggestions."""

    session_id: str
    client_id: str
    ingredients: list[Ingredient] = Field(default_factory=list)
    recipes: list[Recipe] = Field(default_factory=list)
    search_results: list[Recipe] = Field(default_factory=list)
    notice: Optional[str] = None  # last user-facing message


class CreateSessionRequest(BaseModel):
    client_id: str


class SearchRecipesRequest(BaseModel):
    query: str


class FavoritesResponse(BaseModel):
    client_id: str
    count: int
    recipes: list[Recipe] = Field(default_factory=list)


class ToggleFavoriteResponse(BaseModel):
    recipe_id: str
    is_favorite: bool
    count: int
