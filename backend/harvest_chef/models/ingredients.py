"""Ingredient models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Ingredient(BaseModel):
    """An ingredient on the user's working list."""

    id: str
    name: str
    confidence: float = Field(1.0, ge=0, le=1)


class IdentifiedIngredient(BaseModel):
    """Raw ingredient as returned by the vision model (id may be missing)."""

    id: Optional[str] = None
    name: str
    confidence: float = 0


class IdentifyIngredientsRequest(BaseModel):
    """Photo of ingredients to identify."""

    image_base64: str
    mime_type: str = "image/jpeg"


class IdentifyIngredientsResponse(BaseModel):
    ingredients: list[Ingredient] = Field(default_factory=list)


class AddIngredientRequest(BaseModel):
    name: str


class UpdateIngredientRequest(BaseModel):
    name: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0, le=1)
