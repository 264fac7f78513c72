"""
Kitchen session and favorites endpoints.

A session is the server-side view state of one client: its ingredient list,
current suggestions and search results. Favorites persist per client.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from harvest_chef.api.deps import get_favorites_store, get_session_service
from harvest_chef.models.ingredients import (
    AddIngredientRequest,
    IdentifyIngredientsRequest,
    UpdateIngredientRequest,
)
from harvest_chef.models.recipes import Recipe
from harvest_chef.models.session import (
    CreateSessionRequest,
    FavoritesResponse,
    KitchenSession,
    SearchRecipesRequest,
    ToggleFavoriteResponse,
)
from harvest_chef.services.ai import AIServiceError, ContentBlockedError
from harvest_chef.services.ingredients import InvalidImageError, decode_image_base64
from harvest_chef.services.session import FavoritesStore, SessionNotFoundError, SessionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions"])


def _session_or_404(sessions: SessionService, session_id: str) -> KitchenSession:
    try:
        return sessions.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


# =============================================================================
# Sessions
# =============================================================================


@router.post("/api/sessions", response_model=KitchenSession)
async def create_session(
    body: CreateSessionRequest,
    sessions: SessionService = Depends(get_session_service),
):
    if not body.client_id.strip():
        raise HTTPException(status_code=400, detail="client_id is required")
    return sessions.create(body.client_id.strip())


@router.get("/api/sessions/{session_id}", response_model=KitchenSession)
async def get_session(
    session_id: str,
    sessions: SessionService = Depends(get_session_service),
):
    return _session_or_404(sessions, session_id)


@router.delete("/api/sessions/{session_id}")
async def delete_session(
    session_id: str,
    sessions: SessionService = Depends(get_session_service),
):
    _session_or_404(sessions, session_id)
    sessions.delete(session_id)
    return {"deleted": True, "session_id": session_id}


@router.post("/api/sessions/{session_id}/image", response_model=KitchenSession)
async def upload_image(
    session_id: str,
    body: IdentifyIngredientsRequest,
    sessions: SessionService = Depends(get_session_service),
):
    """Identify ingredients in a photo; replaces the list and clears suggestions."""
    session = _session_or_404(sessions, session_id)

    try:
        image_bytes = decode_image_base64(body.image_base64)
        return await sessions.identify_from_image(session_id, image_bytes, body.mime_type)
    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ContentBlockedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AIServiceError as e:
        logger.error(f"Identification failed for session {session_id}: {e}")
        detail = session.notice or "Could not identify ingredients from the image."
        raise HTTPException(status_code=502, detail=detail)


# =============================================================================
# Ingredients
# =============================================================================


@router.post("/api/sessions/{session_id}/ingredients", response_model=KitchenSession)
async def add_ingredient(
    session_id: str,
    body: AddIngredientRequest,
    sessions: SessionService = Depends(get_session_service),
):
    _session_or_404(sessions, session_id)
    try:
        return sessions.add_ingredient(session_id, body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/api/sessions/{session_id}/ingredients/{ingredient_id}", response_model=KitchenSession)
async def update_ingredient(
    session_id: str,
    ingredient_id: str,
    body: UpdateIngredientRequest,
    sessions: SessionService = Depends(get_session_service),
):
    _session_or_404(sessions, session_id)
    try:
        return sessions.update_ingredient(session_id, ingredient_id, body.name, body.confidence)
    except KeyError:
        raise HTTPException(status_code=404, detail="Ingredient not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/api/sessions/{session_id}/ingredients/{ingredient_id}", response_model=KitchenSession)
async def remove_ingredient(
    session_id: str,
    ingredient_id: str,
    sessions: SessionService = Depends(get_session_service),
):
    _session_or_404(sessions, session_id)
    try:
        return sessions.remove_ingredient(session_id, ingredient_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Ingredient not found")


# =============================================================================
# Recipes
# =============================================================================


@router.post("/api/sessions/{session_id}/recipes", response_model=KitchenSession)
async def suggest_recipes(
    session_id: str,
    sessions: SessionService = Depends(get_session_service),
):
    """Suggest recipes from the session's ingredient list."""
    _session_or_404(sessions, session_id)
    try:
        return await sessions.suggest_recipes(session_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/api/sessions/{session_id}/search", response_model=KitchenSession)
async def search_recipes(
    session_id: str,
    body: SearchRecipesRequest,
    sessions: SessionService = Depends(get_session_service),
):
    _session_or_404(sessions, session_id)
    try:
        return await sessions.search_recipes(session_id, body.query)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/api/sessions/{session_id}/favorites/{recipe_id}", response_model=ToggleFavoriteResponse)
async def toggle_session_favorite(
    session_id: str,
    recipe_id: str,
    sessions: SessionService = Depends(get_session_service),
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    """Toggle a recipe shown in this session in or out of the client's favorites."""
    session = _session_or_404(sessions, session_id)

    try:
        recipe = sessions.find_recipe(session_id, recipe_id)
    except KeyError:
        # Already-saved recipes can be un-favorited after the session moved on.
        saved = [r for r in await favorites.list(session.client_id) if r.id == recipe_id]
        if not saved:
            raise HTTPException(status_code=404, detail="Recipe not found in this session")
        recipe = saved[0]

    is_favorite = await favorites.toggle(session.client_id, recipe)
    count = len(await favorites.list(session.client_id))
    return ToggleFavoriteResponse(recipe_id=recipe_id, is_favorite=is_favorite, count=count)


# =============================================================================
# Favorites
# =============================================================================


@router.get("/api/favorites/{client_id}", response_model=FavoritesResponse)
async def list_favorites(
    client_id: str,
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    recipes = await favorites.list(client_id)
    return FavoritesResponse(client_id=client_id, count=len(recipes), recipes=recipes)


@router.post("/api/favorites/{client_id}/toggle", response_model=ToggleFavoriteResponse)
async def toggle_favorite(
    client_id: str,
    recipe: Recipe,
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    """Toggle any recipe by its id (add if absent, remove if present)."""
    is_favorite = await favorites.toggle(client_id, recipe)
    count = len(await favorites.list(client_id))
    return ToggleFavoriteResponse(recipe_id=recipe.id, is_favorite=is_favorite, count=count)


@router.delete("/api/favorites/{client_id}/{recipe_id}")
async def remove_favorite(
    client_id: str,
    recipe_id: str,
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    removed = await favorites.remove(client_id, recipe_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Recipe is not a favorite")
    return {"removed": True, "recipe_id": recipe_id}
