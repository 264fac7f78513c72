"""
Common dependencies for API endpoints.

Long-lived services are created in the app lifespan and kept on app.state;
the per-request ones are assembled here so tests can override any layer.
"""

from fastapi import Depends, Request

from harvest_chef.services.ai import AIService, get_ai_service
from harvest_chef.services.food_data import FoodDataService
from harvest_chef.services.ingredients import IngredientIdentifier
from harvest_chef.services.nutrition import NutritionReconciler
from harvest_chef.services.recipes import RecipeGenerator
from harvest_chef.services.session import FavoritesStore, SessionService


def get_food_data_service(request: Request) -> FoodDataService:
    return request.app.state.food_data_service


def get_favorites_store(request: Request) -> FavoritesStore:
    return request.app.state.favorites_store


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service


def get_ingredient_identifier(ai: AIService = Depends(get_ai_service)) -> IngredientIdentifier:
    return IngredientIdentifier(ai)


def get_recipe_generator(
    ai: AIService = Depends(get_ai_service),
    food_data: FoodDataService = Depends(get_food_data_service),
) -> RecipeGenerator:
    return RecipeGenerator(ai, food_data)


def get_nutrition_reconciler(
    ai: AIService = Depends(get_ai_service),
    food_data: FoodDataService = Depends(get_food_data_service),
) -> NutritionReconciler:
    return NutritionReconciler(food_data, ai)
