"""
Recipe suggestions: model text first, then one image per recipe.

A failed text call means "no recipes", never an error. Images are rendered
concurrently and each one falls back to the placeholder on its own, so one
bad render never touches its siblings.
"""

import asyncio
import logging
from typing import Optional

from harvest_chef.config import get_settings
from harvest_chef.models.food_data import RecipeMatch
from harvest_chef.models.recipes import (
    DietaryCategory,
    Difficulty,
    Recipe,
    RecipeIdea,
    SourceInfo,
    recipe_id,
)
from harvest_chef.services.ai import AIService, AIServiceError
from harvest_chef.services.food_data import FoodDataService

logger = logging.getLogger(__name__)
settings = get_settings()

MAX_CATALOG_SUGGESTIONS = 2
MAX_AI_SUGGESTIONS = 3
MAX_ENHANCED_RESULTS = 5
AI_SOURCE_CONFIDENCE = 0.8


class RecipeGenerator:
    """Generates recipe suggestions from a pantry list or a search query."""

    def __init__(self, ai: AIService, food_data: Optional[FoodDataService] = None):
        self.ai = ai
        self.food_data = food_data

    async def suggest_recipes(self, ingredients: list[str], count: Optional[int] = None) -> list[Recipe]:
        """Recipes using only the given ingredients."""
        try:
            ideas = await self.ai.suggest_recipe_ideas(ingredients, count or settings.recipe_count)
        except AIServiceError as e:
            logger.error(f"Error suggesting recipe ideas: {e}")
            return []

        return await self._render(ideas)

    async def find_recipes_by_name(self, query: str, count: Optional[int] = None) -> list[Recipe]:
        """Recipes matching a free-text name or description."""
        try:
            ideas = await self.ai.find_recipe_ideas(query, count or settings.recipe_count)
        except AIServiceError as e:
            logger.error(f"Error finding recipes for '{query}': {e}")
            return []

        return await self._render(ideas)

    async def suggest_enhanced_recipes(
        self,
        ingredients: list[str],
        use_food_data: bool = True,
        preferred_cuisine: Optional[str] = None,
        dietary_restrictions: Optional[list[str]] = None,
    ) -> list[Recipe]:
        """
        Blend catalog matches with detailed AI recipes.

        Up to 2 catalog-derived suggestions come first, then up to 3 AI
        recipes; at most 5 are returned, all with rendered images.
        """
        matches: list[RecipeMatch] = []
        if use_food_data and self.food_data is not None:
            matches = await self.food_data.find_recipes_by_ingredients(ingredients)

        try:
            ideas = await self.ai.generate_detailed_recipe_ideas(
                ingredients,
                MAX_AI_SUGGESTIONS,
                preferred_cuisine=preferred_cuisine,
                dietary_restrictions=dietary_restrictions,
            )
        except AIServiceError as e:
            logger.error(f"Error generating detailed recipes: {e}")
            ideas = []

        # Distinct products can share a name; keep the first (highest-confidence) one.
        seen: set[str] = set()
        unique = []
        for match in matches:
            key = match.recipe_name.strip().lower()
            if key not in seen:
                seen.add(key)
                unique.append(match)
        matches = unique[:MAX_CATALOG_SUGGESTIONS]

        candidates = [self._idea_from_match(match, preferred_cuisine) for match in matches]
        sources = [
            SourceInfo(
                from_open_food_facts=True,
                confidence=match.confidence,
                matching_ingredients=len(match.matching_ingredients),
            )
            for match in matches
        ]

        for idea in ideas[:MAX_AI_SUGGESTIONS]:
            candidates.append(idea)
            sources.append(
                SourceInfo(
                    from_open_food_facts=False,
                    confidence=AI_SOURCE_CONFIDENCE,
                    matching_ingredients=len(idea.ingredients),
                )
            )

        recipes = await self._render(candidates, sources)
        return recipes[:MAX_ENHANCED_RESULTS]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _render(
        self,
        ideas: list[RecipeIdea],
        sources: Optional[list[Optional[SourceInfo]]] = None,
    ) -> list[Recipe]:
        """Attach an image to each idea, concurrently, preserving order."""
        if sources is None:
            sources = [None] * len(ideas)

        image_urls = await asyncio.gather(*(self._render_image(idea) for idea in ideas))

        return [
            Recipe(
                id=recipe_id(idea.name, idea.ingredients, idea.instructions),
                name=idea.name,
                ingredients=idea.ingredients,
                instructions=idea.instructions,
                image_url=image_url,
                estimated_cooking_time=idea.estimated_cooking_time,
                dietary_category=idea.dietary_category,
                difficulty=idea.difficulty,
                cuisine=idea.cuisine,
                nutritional_highlights=idea.nutritional_highlights,
                source_info=source,
            )
            for idea, image_url, source in zip(ideas, image_urls, sources)
        ]

    async def _render_image(self, idea: RecipeIdea) -> str:
        """Image URL for one recipe; the placeholder on any failure."""
        prompt = idea.image_prompt or (
            f"A photorealistic, appetizing image of {idea.name}, beautifully plated and ready to serve. "
            "Professional food photography style."
        )
        try:
            url = await self.ai.generate_image(prompt)
        except Exception as e:
            logger.error(f'Error generating image for recipe "{idea.name}": {e}')
            return settings.placeholder_image_url

        return url or settings.placeholder_image_url

    def _idea_from_match(self, match: RecipeMatch, preferred_cuisine: Optional[str]) -> RecipeIdea:
        """Catalog match -> recipe shell; instructions are not known yet."""
        return RecipeIdea(
            name=match.recipe_name,
            ingredients=[*match.matching_ingredients, *match.additional_ingredients],
            instructions=[f"Based on {match.recipe_name} - cooking instructions to be generated."],
            estimated_cooking_time="30-45 minutes",
            # catalog products carry no diet label
            dietary_category=DietaryCategory.VEGETARIAN,
            difficulty=Difficulty.MEDIUM,
            cuisine=preferred_cuisine or "International",
            nutritional_highlights=["Real food data", "Verified ingredients"],
        )
