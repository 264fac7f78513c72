"""
Pytest configuration and shared fixtures.

Fixtures defined here are available to all tests.
"""

import io
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

# Settings are read at import time; make sure they resolve without a .env
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ["CONTENT_MODERATION"] = "false"
os.environ["API_KEY"] = ""
os.environ["TESTING"] = "true"


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def app():
    """FastAPI test application with dependency overrides cleared afterwards."""
    from harvest_chef.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Sync test client for API tests (lifespan not run; override services)."""
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
async def async_client(app):
    """Async test client for API tests."""
    from httpx import AsyncClient, ASGITransport
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


# =============================================================================
# Mock Service Fixtures
# =============================================================================


@pytest.fixture
def mock_ai():
    """AIService with every model call mocked."""
    from harvest_chef.services.ai import AIService
    return AsyncMock(spec=AIService)


@pytest.fixture
def mock_food_data():
    """FoodDataService with every catalog call mocked."""
    from harvest_chef.services.food_data import FoodDataService
    return AsyncMock(spec=FoodDataService)


@pytest.fixture
async def favorites_store(tmp_path):
    """Favorites store backed by a throwaway SQLite file."""
    from harvest_chef.services.session import FavoritesStore
    store = FavoritesStore(str(tmp_path / "favorites.db"))
    await store.init()
    yield store
    await store.close()


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def off_product():
    """Factory for raw Open Food Facts product dicts."""
    def _make(name="Test Product", ingredients_text=None, **nutriments):
        return {
            "code": "3017620422003",
            "product_name": name,
            "brands": "Test Brand",
            "categories": "Plant-based foods, Vegetables",
            "ingredients_text": ingredients_text,
            "nutriments": nutriments,
            "image_url": "https://images.openfoodfacts.org/test.jpg",
        }
    return _make


@pytest.fixture
def complete_nutriments():
    """Nutriments carrying all four required per-100g fields."""
    return {
        "energy-kcal_100g": 18,
        "proteins_100g": 0.9,
        "fat_100g": 0.2,
        "carbohydrates_100g": 3.9,
        "fiber_100g": 1.2,
        "sugars_100g": 2.6,
    }


@pytest.fixture
def recipe_idea():
    """Factory for RecipeIdea objects."""
    from harvest_chef.models.recipes import RecipeIdea

    def _make(name="Tomato Rice", ingredients=None, **kwargs):
        return RecipeIdea(
            name=name,
            ingredients=ingredients or ["tomato", "rice"],
            instructions=kwargs.pop("instructions", ["Cook the rice.", "Stir in the tomato."]),
            estimated_cooking_time=kwargs.pop("estimated_cooking_time", "30 minutes"),
            image_prompt=kwargs.pop("image_prompt", f"A bowl of {name.lower()}"),
            **kwargs,
        )
    return _make


@pytest.fixture
def sample_recipe():
    """Factory for finished Recipe objects."""
    from harvest_chef.models.recipes import Recipe, recipe_id

    def _make(name="Tomato Rice", ingredients=None):
        ingredients = ingredients or ["tomato", "rice"]
        instructions = ["Cook the rice.", "Stir in the tomato."]
        return Recipe(
            id=recipe_id(name, ingredients, instructions),
            name=name,
            ingredients=ingredients,
            instructions=instructions,
            image_url="https://placehold.co/600x400.png",
            estimated_cooking_time="30 minutes",
        )
    return _make


# =============================================================================
# Utility Fixtures
# =============================================================================


@pytest.fixture
def image_bytes():
    """A small PNG image."""
    from PIL import Image

    img = Image.new("RGB", (32, 32), color="red")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def chat_response():
    """Factory for objects shaped like an OpenAI chat completion."""
    def _make(content):
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )
    return _make
