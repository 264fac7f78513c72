"""
Integration tests for ingredient, recipe and nutrition endpoints.

Services run for real; only the OpenAI and Open Food Facts clients are mocked.
"""

import base64

import pytest

from harvest_chef.api.deps import get_food_data_service
from harvest_chef.config import get_settings
from harvest_chef.models.food_data import NutritionRecord, RecipeMatch
from harvest_chef.models.ingredients import IdentifiedIngredient
from harvest_chef.models.nutrition import MacroEstimate
from harvest_chef.services.ai import AIServiceError, ContentBlockedError, get_ai_service


@pytest.fixture
def api(app, client, mock_ai, mock_food_data):
    app.dependency_overrides[get_ai_service] = lambda: mock_ai
    app.dependency_overrides[get_food_data_service] = lambda: mock_food_data
    return client


class TestIdentifyEndpoint:
    """Tests for POST /api/ingredients/identify"""

    @pytest.mark.integration
    def test_identify(self, api, mock_ai, image_bytes):
        mock_ai.identify_ingredients.return_value = [
            IdentifiedIngredient(id="1", name="tomato", confidence=0.9),
            IdentifiedIngredient(name="Tomato", confidence=0.5),
            IdentifiedIngredient(name="basil", confidence=0.7),
        ]

        response = api.post(
            "/api/ingredients/identify",
            json={"image_base64": base64.b64encode(image_bytes).decode(), "mime_type": "image/png"},
        )

        assert response.status_code == 200
        ingredients = response.json()["ingredients"]
        assert [i["name"] for i in ingredients] == ["tomato", "basil"]
        assert all(i["id"] for i in ingredients)

    @pytest.mark.integration
    def test_invalid_base64_is_400(self, api):
        response = api.post("/api/ingredients/identify", json={"image_base64": "not-valid-base64!!!"})
        assert response.status_code == 400

    @pytest.mark.integration
    def test_not_an_image_is_400(self, api):
        response = api.post(
            "/api/ingredients/identify",
            json={"image_base64": base64.b64encode(b"fake image").decode()},
        )
        assert response.status_code == 400

    @pytest.mark.integration
    def test_model_failure_is_502(self, api, mock_ai, image_bytes):
        mock_ai.identify_ingredients.side_effect = AIServiceError("vision down")

        response = api.post(
            "/api/ingredients/identify",
            json={"image_base64": base64.b64encode(image_bytes).decode()},
        )

        assert response.status_code == 502
        assert "try another one" in response.json()["detail"]


class TestRecipeEndpoints:
    """Tests for /api/recipes"""

    @pytest.mark.integration
    def test_suggest(self, api, mock_ai, recipe_idea):
        mock_ai.suggest_recipe_ideas.return_value = [recipe_idea("Soup"), recipe_idea("Salad")]
        mock_ai.generate_image.side_effect = [AIServiceError("quota"), "https://img/salad.png"]

        response = api.post("/api/recipes/suggest", json={"ingredients": ["tomato", " rice "]})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["recipes"][0]["image_url"] == get_settings().placeholder_image_url
        assert data["recipes"][1]["image_url"] == "https://img/salad.png"
        assert mock_ai.suggest_recipe_ideas.await_args.args[0] == ["tomato", "rice"]

    @pytest.mark.integration
    def test_suggest_failure_is_empty_list(self, api, mock_ai):
        mock_ai.suggest_recipe_ideas.side_effect = AIServiceError("down")

        response = api.post("/api/recipes/suggest", json={"ingredients": ["tomato"]})

        assert response.status_code == 200
        assert response.json() == {"count": 0, "recipes": []}

    @pytest.mark.integration
    def test_suggest_blank_ingredients_is_400(self, api):
        response = api.post("/api/recipes/suggest", json={"ingredients": ["  "]})
        assert response.status_code == 400

    @pytest.mark.integration
    def test_suggest_empty_list_is_422(self, api):
        response = api.post("/api/recipes/suggest", json={"ingredients": []})
        assert response.status_code == 422

    @pytest.mark.integration
    def test_search(self, api, mock_ai, recipe_idea):
        mock_ai.find_recipe_ideas.return_value = [recipe_idea("Pad Thai")]
        mock_ai.generate_image.return_value = None

        response = api.post("/api/recipes/search", json={"query": "pad thai"})

        assert response.status_code == 200
        assert response.json()["recipes"][0]["name"] == "Pad Thai"

    @pytest.mark.integration
    def test_search_blank_is_400(self, api):
        response = api.post("/api/recipes/search", json={"query": " "})
        assert response.status_code == 400

    @pytest.mark.integration
    def test_search_blocked_content_is_empty(self, api, mock_ai):
        mock_ai.find_recipe_ideas.side_effect = ContentBlockedError("blocked")

        response = api.post("/api/recipes/search", json={"query": "something rude"})

        assert response.status_code == 200
        assert response.json()["count"] == 0

    @pytest.mark.integration
    def test_enhanced(self, api, mock_ai, mock_food_data, recipe_idea):
        mock_food_data.find_recipes_by_ingredients.return_value = [
            RecipeMatch(recipe_name="Tomato Soup", matching_ingredients=["tomato"], confidence=0.5)
        ]
        mock_ai.generate_detailed_recipe_ideas.return_value = [recipe_idea("Risotto")]
        mock_ai.generate_image.return_value = "https://img/x.png"

        response = api.post(
            "/api/recipes/enhanced",
            json={"ingredients": ["tomato", "rice"], "preferred_cuisine": "Italian"},
        )

        assert response.status_code == 200
        recipes = response.json()["recipes"]
        assert [r["name"] for r in recipes] == ["Tomato Soup", "Risotto"]
        assert recipes[0]["source_info"]["from_open_food_facts"] is True
        assert recipes[0]["cuisine"] == "Italian"


class TestNutritionEndpoints:
    """Tests for /api/nutrition"""

    @pytest.mark.integration
    def test_enhanced_analysis(self, api, mock_ai, mock_food_data):
        records = {"tomato": NutritionRecord(calories=20, protein=1, fat=0.4, carbohydrates=4)}

        async def _lookup(name):
            return records.get(name)

        mock_food_data.get_nutritional_info.side_effect = _lookup
        mock_ai.estimate_ingredients_nutrition.return_value = MacroEstimate(calories=200, protein=4)

        response = api.post(
            "/api/nutrition/enhanced-analysis",
            json={"recipe_name": "Tomato Rice", "ingredients": ["tomato", "rice"], "serving_size": 2},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["calories"] == "105 kcal"
        assert data["protein"] == "2.3g"
        assert data["serving_size"] == "2 servings"
        assert data["data_sources_count"] == 1
        assert "1/2 ingredients" in data["data_source"]

    @pytest.mark.integration
    def test_enhanced_analysis_failure_is_502(self, api, mock_ai, mock_food_data):
        mock_food_data.get_nutritional_info.return_value = None
        mock_ai.estimate_recipe_nutrition.side_effect = AIServiceError("no output")

        response = api.post(
            "/api/nutrition/enhanced-analysis",
            json={"recipe_name": "Stew", "ingredients": ["saffron"]},
        )

        assert response.status_code == 502

    @pytest.mark.integration
    def test_enhanced_analysis_rejects_zero_servings(self, api):
        response = api.post(
            "/api/nutrition/enhanced-analysis",
            json={"recipe_name": "Stew", "ingredients": ["saffron"], "serving_size": 0},
        )
        assert response.status_code == 422

    @pytest.mark.integration
    def test_ai_only_analysis(self, api, mock_ai):
        from harvest_chef.models.nutrition import NutritionalEstimate

        mock_ai.get_nutritional_analysis.return_value = NutritionalEstimate(
            calories="450 kcal", protein="20g", fat="10g", carbohydrates="60g",
            fiber="5g", sugar="8g", serving_size="1 bowl", disclaimer="Estimate.",
        )

        response = api.post("/api/nutrition/analysis", json={"recipe_name": "Soup", "ingredients": ["water"]})

        assert response.status_code == 200
        assert response.json()["serving_size"] == "1 bowl"
