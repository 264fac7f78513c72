"""Recipe suggestion endpoints.

A failed generation answers 200 with an empty list; clients show an empty
state rather than an error.
"""

from fastapi import APIRouter, Depends, HTTPException

from harvest_chef.api.deps import get_recipe_generator
from harvest_chef.models.recipes import (
    EnhancedSuggestionsRequest,
    FindRecipesByNameRequest,
    RecipeListResponse,
    SuggestRecipesRequest,
)
from harvest_chef.services.recipes import RecipeGenerator

router = APIRouter(prefix="/api/recipes", tags=["recipes"])


def _clean(ingredients: list[str]) -> list[str]:
    cleaned = [i.strip() for i in ingredients if i.strip()]
    if not cleaned:
        raise HTTPException(status_code=400, detail="At least one ingredient is required")
    return cleaned


@router.post("/suggest", response_model=RecipeListResponse)
async def suggest_recipes(
    body: SuggestRecipesRequest,
    generator: RecipeGenerator = Depends(get_recipe_generator),
):
    """Recipes that can be made from the given ingredients."""
    recipes = await generator.suggest_recipes(_clean(body.ingredients))
    return RecipeListResponse(count=len(recipes), recipes=recipes)


@router.post("/search", response_model=RecipeListResponse)
async def search_recipes(
    body: FindRecipesByNameRequest,
    generator: RecipeGenerator = Depends(get_recipe_generator),
):
    """Recipes matching a name or description."""
    if not body.query.strip():
        raise HTTPException(status_code=400, detail="Missing query")

    recipes = await generator.find_recipes_by_name(body.query.strip())
    return RecipeListResponse(count=len(recipes), recipes=recipes)


@router.post("/enhanced", response_model=RecipeListResponse)
async def enhanced_recipes(
    body: EnhancedSuggestionsRequest,
    generator: RecipeGenerator = Depends(get_recipe_generator),
):
    """Catalog matches blended with detailed AI recipes."""
    recipes = await generator.suggest_enhanced_recipes(
        _clean(body.ingredients),
        use_food_data=body.use_open_food_facts,
        preferred_cuisine=body.preferred_cuisine,
        dietary_restrictions=body.dietary_restrictions,
    )
    return RecipeListResponse(count=len(recipes), recipes=recipes)
