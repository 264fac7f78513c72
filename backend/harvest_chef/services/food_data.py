"""
Open Food Facts product search and nutrition lookup.

Every call degrades to "no data" (None / empty list) on transport errors,
non-2xx statuses or malformed bodies. Callers never see an exception from
this module.

API: https://world.openfoodfacts.org/cgi/search.pl
     https://world.openfoodfacts.org/api/v0/product/{barcode}.json
"""

import logging
from typing import Optional

import httpx

from harvest_chef.config import get_settings
from harvest_chef.models.food_data import FoodProduct, NutritionRecord, RecipeMatch

logger = logging.getLogger(__name__)
settings = get_settings()

SEARCH_FIELDS = (
    "code,product_name,product_name_en,brands,categories,ingredients_text,"
    "ingredients_text_en,nutriments,image_url,image_front_url"
)

# OFF nutriment key -> NutritionRecord field. The first four are required.
REQUIRED_NUTRIMENTS = {
    "energy-kcal_100g": "calories",
    "proteins_100g": "protein",
    "fat_100g": "fat",
    "carbohydrates_100g": "carbohydrates",
}
OPTIONAL_NUTRIMENTS = {
    "fiber_100g": "fiber",
    "sugars_100g": "sugar",
}

MIN_MATCH_CONFIDENCE = 0.3
MAX_RECIPE_MATCHES = 10
MAX_ALTERNATIVES = 5


class FoodDataService:
    """Thin async client over the Open Food Facts public API."""

    def __init__(self, http: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.off_base_url.rstrip("/")
        self.http = http

    async def init(self):
        """Open the shared HTTP client."""
        if self.http is None:
            self.http = httpx.AsyncClient(
                timeout=settings.off_timeout,
                headers={"User-Agent": settings.off_user_agent},
            )
        logger.info(f"Food data client ready ({self.base_url})")

    async def close(self):
        """Close HTTP connections."""
        if self.http:
            await self.http.aclose()

    # =========================================================================
    # Catalog Access
    # =========================================================================

    async def search_products(self, query: str, limit: int = 20) -> list[FoodProduct]:
        """Search products by free text, in API response order."""
        params = {
            "search_terms": query,
            "search_simple": "1",
            "action": "process",
            "json": "1",
            "page_size": str(limit),
            "fields": SEARCH_FIELDS,
        }

        try:
            response = await self.http.get(f"{self.base_url}/cgi/search.pl", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Open Food Facts search failed for '{query}': HTTP {e.response.status_code}")
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Open Food Facts search failed for '{query}': {e}")
            return []

        products = data.get("products") if isinstance(data, dict) else None
        if not isinstance(products, list):
            return []

        return [self._parse_product(p) for p in products if isinstance(p, dict)]

    async def get_product(self, barcode: str) -> Optional[FoodProduct]:
        """Look up a single product by barcode."""
        barcode = self._normalize_barcode(barcode)
        if not barcode:
            return None

        try:
            response = await self.http.get(f"{self.base_url}/api/v0/product/{barcode}.json")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                logger.error(f"Open Food Facts product lookup failed for {barcode}: HTTP {e.response.status_code}")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Open Food Facts product lookup failed for {barcode}: {e}")
            return None

        if not isinstance(data, dict) or data.get("status") != 1:
            return None

        product = data.get("product")
        if not isinstance(product, dict):
            return None
        product.setdefault("code", barcode)
        return self._parse_product(product)

    # =========================================================================
    # Derived Lookups
    # =========================================================================

    async def get_nutritional_info(self, ingredient_name: str) -> Optional[NutritionRecord]:
        """
        Per-100g macros for an ingredient.

        Takes the first of up to 5 search results whose nutriments carry all
        of calories, protein, fat and carbohydrates. Returns None when no
        candidate qualifies.
        """
        products = await self.search_products(ingredient_name, 5)

        for product in products:
            nutriments = product.nutriments
            if all(nutriments.get(key) is not None for key in REQUIRED_NUTRIMENTS):
                values = {
                    field: self._safe_float(nutriments.get(key))
                    for key, field in {**REQUIRED_NUTRIMENTS, **OPTIONAL_NUTRIMENTS}.items()
                }
                return NutritionRecord(**values)

        return None

    async def find_recipes_by_ingredients(self, ingredients: list[str]) -> list[RecipeMatch]:
        """
        Catalog products whose ingredient text covers the user's pantry.

        Confidence is the share of user ingredients found as substrings of a
        product's ingredient text. Matches at or below 0.3 are dropped; the
        top 10 are returned, highest confidence first.
        """
        if not ingredients:
            return []

        suggestions: list[RecipeMatch] = []

        for ingredient in ingredients:
            products = await self.search_products(f"recipe {ingredient}", 10)

            for product in products:
                if not product.name or not product.ingredients_text:
                    continue

                confidence = self._calculate_ingredient_match(ingredients, product.ingredients_text)
                if confidence > MIN_MATCH_CONFIDENCE:
                    text = product.ingredients_text.lower()
                    suggestions.append(
                        RecipeMatch(
                            recipe_name=product.name,
                            matching_ingredients=[i for i in ingredients if i.lower() in text],
                            confidence=confidence,
                        )
                    )

        # sorted() is stable, so equal scores keep discovery order
        suggestions = sorted(suggestions, key=lambda s: s.confidence, reverse=True)
        return suggestions[:MAX_RECIPE_MATCHES]

    async def get_ingredient_alternatives(self, ingredient: str) -> list[str]:
        """Category names related to an ingredient, usable as substitutes."""
        products = await self.search_products(ingredient, 20)
        needle = ingredient.lower()
        alternatives: list[str] = []

        for product in products:
            if not product.categories:
                continue
            for category in (c.strip() for c in product.categories.split(",")):
                if not category:
                    continue
                lowered = category.lower()
                if (needle in lowered or lowered in needle) and category not in alternatives:
                    alternatives.append(category)

        return alternatives[:MAX_ALTERNATIVES]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _parse_product(self, product: dict) -> FoodProduct:
        """Parse an OFF product into FoodProduct, applying field fallbacks."""
        nutriments = product.get("nutriments")

        return FoodProduct(
            code=str(product.get("code") or ""),
            name=product.get("product_name") or product.get("product_name_en") or None,
            brand=product.get("brands") or None,
            categories=product.get("categories") or None,
            ingredients_text=product.get("ingredients_text") or product.get("ingredients_text_en") or None,
            nutriments=nutriments if isinstance(nutriments, dict) else {},
            image_url=product.get("image_url") or product.get("image_front_url") or None,
        )

    def _calculate_ingredient_match(self, user_ingredients: list[str], product_ingredients: str) -> float:
        """Fraction of user ingredients appearing in the product's ingredient text."""
        if not user_ingredients:
            return 0.0
        text = product_ingredients.lower()
        matches = sum(1 for ingredient in user_ingredients if ingredient.lower() in text)
        return matches / len(user_ingredients)

    def _normalize_barcode(self, barcode: str) -> str:
        """Normalize barcode format."""
        return "".join(c for c in barcode if c.isdigit())

    def _safe_float(self, value) -> float:
        """Safely convert value to float."""
        if value is None:
            return 0.0
        try:
            return float(value)
        except (ValueError, TypeError):
            return 0.0
