"""
Integration tests for the Open Food Facts endpoints.

The catalog client is replaced by a mock; no network traffic.
"""

import pytest

from harvest_chef.api.deps import get_food_data_service
from harvest_chef.models.food_data import FoodProduct, NutritionRecord


@pytest.fixture
def food_client(app, client, mock_food_data):
    app.dependency_overrides[get_food_data_service] = lambda: mock_food_data
    return client


class TestNutritionTestEndpoint:
    """Tests for POST /api/test-nutrition"""

    @pytest.mark.integration
    def test_returns_record(self, food_client, mock_food_data):
        mock_food_data.get_nutritional_info.return_value = NutritionRecord(
            calories=18, protein=0.9, fat=0.2, carbohydrates=3.9
        )

        response = food_client.post("/api/test-nutrition", json={"ingredient": "tomato"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["has_data"] is True
        assert data["nutritional_info"]["calories"] == 18
        assert data["nutritional_info"]["fiber"] == 0

    @pytest.mark.integration
    def test_returns_null_without_data(self, food_client, mock_food_data):
        mock_food_data.get_nutritional_info.return_value = None

        response = food_client.post("/api/test-nutrition", json={"ingredient": "unobtainium"})

        assert response.status_code == 200
        assert response.json()["nutritional_info"] is None
        assert response.json()["has_data"] is False

    @pytest.mark.integration
    @pytest.mark.parametrize("body", [{}, {"ingredient": ""}, {"ingredient": 42}])
    def test_missing_ingredient_is_400(self, food_client, body):
        response = food_client.post("/api/test-nutrition", json=body)

        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.integration
    def test_non_json_body_is_400(self, food_client):
        response = food_client.post(
            "/api/test-nutrition", content=b"ingredient=tomato", headers={"Content-Type": "text/plain"}
        )
        assert response.status_code == 400

    @pytest.mark.integration
    def test_unexpected_failure_is_500(self, food_client, mock_food_data):
        mock_food_data.get_nutritional_info.side_effect = RuntimeError("boom")

        response = food_client.post("/api/test-nutrition", json={"ingredient": "tomato"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to get nutritional information"}


class TestSearchTestEndpoint:
    """Tests for GET /api/test-open-food-facts"""

    @pytest.mark.integration
    def test_returns_summaries(self, food_client, mock_food_data):
        mock_food_data.search_products.return_value = [
            FoodProduct(code="1", name="Tomato Sauce", brand="Acme", nutriments={"fat_100g": 1}),
            FoodProduct(code="2", name="Tomato Paste"),
        ]

        response = food_client.get("/api/test-open-food-facts", params={"q": "tomato", "limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["count"] == 2
        assert data["products"][0]["brands"] == "Acme"
        assert data["products"][0]["has_nutrition"] is True
        assert data["products"][1]["has_nutrition"] is False
        mock_food_data.search_products.assert_awaited_once_with("tomato", 2)

    @pytest.mark.integration
    def test_default_limit(self, food_client, mock_food_data):
        mock_food_data.search_products.return_value = []

        food_client.get("/api/test-open-food-facts", params={"q": "tomato"})

        mock_food_data.search_products.assert_awaited_once_with("tomato", 5)

    @pytest.mark.integration
    def test_missing_query_is_400(self, food_client):
        response = food_client.get("/api/test-open-food-facts")
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.integration
    def test_unexpected_failure_is_500(self, food_client, mock_food_data):
        mock_food_data.search_products.side_effect = RuntimeError("boom")

        response = food_client.get("/api/test-open-food-facts", params={"q": "tomato"})

        assert response.status_code == 500


class TestFoodDataEndpoints:
    """Tests for /api/food-data"""

    @pytest.mark.integration
    def test_product_found(self, food_client, mock_food_data):
        mock_food_data.get_product.return_value = FoodProduct(code="3017620422003", name="Spread")

        response = food_client.get("/api/food-data/product/3017620422003")

        assert response.status_code == 200
        assert response.json()["name"] == "Spread"

    @pytest.mark.integration
    def test_product_not_found(self, food_client, mock_food_data):
        mock_food_data.get_product.return_value = None

        response = food_client.get("/api/food-data/product/0000")

        assert response.status_code == 404

    @pytest.mark.integration
    def test_alternatives(self, food_client, mock_food_data):
        mock_food_data.get_ingredient_alternatives.return_value = ["Cheeses", "Goat cheeses"]

        response = food_client.get("/api/food-data/alternatives", params={"ingredient": "cheese"})

        assert response.status_code == 200
        assert response.json() == {"ingredient": "cheese", "alternatives": ["Cheeses", "Goat cheeses"]}
