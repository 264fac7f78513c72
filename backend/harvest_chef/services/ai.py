"""AI service - OpenAI integration for ingredient vision, recipes, nutrition and images."""

import json
import logging
from functools import lru_cache
from typing import Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from harvest_chef.config import get_settings
from harvest_chef.models.ingredients import IdentifiedIngredient
from harvest_chef.models.nutrition import MacroEstimate, NutritionalEstimate
from harvest_chef.models.recipes import RecipeIdea

logger = logging.getLogger(__name__)
settings = get_settings()


class AIServiceError(Exception):
    """The model call failed or returned output we could not use."""


class ContentBlockedError(AIServiceError):
    """The request tripped a content-safety threshold."""


# Content-safety thresholds, set per call: moderation category -> score at
# or above which the request is blocked. Categories left out are not blocked.
RECIPE_SAFETY = {
    "harassment": 0.5,  # block medium and above
    "hate": 0.75,  # block only high
    "sexual": 0.25,  # block low and above
}
NUTRITION_SAFETY: dict[str, float] = {}

RECIPE_JSON_SHAPE = """{
  "recipes": [
    {
      "name": "Recipe Name",
      "ingredients": ["ingredient", "..."],
      "instructions": ["Step 1...", "Step 2..."],
      "estimated_cooking_time": "30-45 minutes",
      "dietary_category": "Vegetarian|Eggetarian|Non-Vegetarian",
      "image_prompt": "A descriptive prompt for a photorealistic picture of the finished dish"%s
    }
  ]
}"""

ENHANCED_FIELDS = """,
      "difficulty": "Easy|Medium|Hard",
      "cuisine": "cuisine type",
      "nutritional_highlights": ["key nutritional benefit", "..."]"""

MACRO_JSON_SHAPE = """{
  "calories": number,
  "protein": number (grams),
  "fat": number (grams),
  "carbohydrates": number (grams),
  "fiber": number (grams),
  "sugar": number (grams)
}"""


class AIService:
    """OpenAI-powered model calls for harvest-chef."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout,
        )
        self.moderation_enabled = settings.content_moderation

    # =========================================================================
    # Ingredients
    # =========================================================================

    async def identify_ingredients(self, photo_data_uri: str) -> list[IdentifiedIngredient]:
        """Identify food ingredients in a photo given as a base64 data URI."""
        system_prompt = """You are an expert food identifier. You will identify the food ingredients in a photo.

Your task is to:
1. Identify all distinct food items in the image.
2. Consolidate variations of the same ingredient. For example, if you see "tomato" and "tomatoes", list it only once as "tomato". Use singular forms for all ingredients.
3. Filter out any items that are not edible food ingredients.
4. For each valid ingredient, provide its name, a unique UUID for its id, and a confidence score from 0.0 to 1.0 representing how certain you are about the identification.

Return JSON only:
{
  "ingredients": [
    {"id": "uuid", "name": "ingredient name", "confidence": 0.9}
  ]
}"""

        data = await self._json_completion(
            system_prompt,
            [
                {"type": "text", "text": "Return a clean, de-duplicated list of validated food ingredients."},
                {"type": "image_url", "image_url": {"url": photo_data_uri}},
            ],
            model=settings.openai_vision_model,
            temperature=0.2,
        )

        raw = data.get("ingredients") or []
        if not isinstance(raw, list):
            raise AIServiceError("Model returned a malformed ingredient list")

        ingredients = []
        for item in raw:
            try:
                ingredients.append(IdentifiedIngredient.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping malformed ingredient from model output: {item!r} ({e.error_count()} errors)")
        return ingredients

    # =========================================================================
    # Recipes
    # =========================================================================

    async def suggest_recipe_ideas(self, ingredients: list[str], count: int = 3) -> list[RecipeIdea]:
        """Recipes that can be made with only the given ingredients."""
        system_prompt = f"""You are a sous chef specializing in creating recipes based on a limited set of ingredients.

Only suggest recipes that can be made with the ingredients provided. For each recipe, provide the name, the list of ingredients from the input that are used, the step-by-step instructions, the estimated cooking time, the dietary category (determine it from the ingredients), and a detailed, descriptive prompt to generate an image of the finished dish.

Return JSON with this structure:
{RECIPE_JSON_SHAPE % ""}"""

        user_prompt = f"Ingredients: {', '.join(ingredients)}\n\nSuggest {count} recipes."
        await self._moderate(user_prompt, RECIPE_SAFETY)

        data = await self._json_completion(system_prompt, user_prompt, temperature=0.7)
        return self._parse_recipe_ideas(data)

    async def find_recipe_ideas(self, query: str, count: int = 3) -> list[RecipeIdea]:
        """Recipes matching a free-text name or description."""
        system_prompt = f"""You are a creative chef. A user wants to find recipes based on a search query.

For each recipe, provide the name, a complete list of ingredients, the step-by-step instructions, the estimated cooking time, the dietary category, and a detailed, descriptive prompt to generate an image of the finished dish.

Return JSON with this structure:
{RECIPE_JSON_SHAPE % ""}"""

        user_prompt = f"User query: {query}\n\nSuggest {count} recipes."
        await self._moderate(user_prompt, RECIPE_SAFETY)

        data = await self._json_completion(system_prompt, user_prompt, temperature=0.7)
        return self._parse_recipe_ideas(data)

    async def generate_detailed_recipe_ideas(
        self,
        ingredients: list[str],
        count: int = 3,
        preferred_cuisine: Optional[str] = None,
        dietary_restrictions: Optional[list[str]] = None,
    ) -> list[RecipeIdea]:
        """Detailed recipes with difficulty, cuisine and nutritional highlights."""
        system_prompt = f"""You are a chef writing detailed recipes from a pantry list.

For each recipe provide complete details including difficulty level, cuisine type, and nutritional highlights, plus a detailed, descriptive prompt to generate an image of the finished dish.

Return JSON with this structure:
{RECIPE_JSON_SHAPE % ENHANCED_FIELDS}"""

        lines = [f"Create {count} detailed recipes using these ingredients: {', '.join(ingredients)}"]
        if preferred_cuisine:
            lines.append(f"Preferred cuisine: {preferred_cuisine}")
        if dietary_restrictions:
            lines.append(f"Dietary restrictions: {', '.join(dietary_restrictions)}")
        user_prompt = "\n".join(lines)
        await self._moderate(user_prompt, RECIPE_SAFETY)

        data = await self._json_completion(system_prompt, user_prompt, temperature=0.7)
        return self._parse_recipe_ideas(data)

    async def generate_image(self, prompt: str) -> Optional[str]:
        """Render a dish image. Returns a URL or data URI, or None if the model gave neither."""
        try:
            response = await self.client.images.generate(
                model=settings.openai_image_model,
                prompt=prompt,
                n=1,
                size="1024x1024",
            )
        except OpenAIError as e:
            raise AIServiceError(f"Image generation failed: {e}") from e

        if not response.data:
            return None

        image = response.data[0]
        if image.url:
            return image.url
        if image.b64_json:
            return f"data:image/png;base64,{image.b64_json}"
        return None

    # =========================================================================
    # Nutrition
    # =========================================================================

    async def estimate_ingredients_nutrition(self, ingredients: list[str], recipe_name: str) -> MacroEstimate:
        """Aggregate macros for a subset of a recipe's ingredients."""
        system_prompt = f"""You are a nutrition estimation assistant with knowledge of food composition.
Return JSON only:
{MACRO_JSON_SHAPE}

Provide estimated totals assuming reasonable portion sizes for a typical recipe serving."""

        user_prompt = (
            f'Estimate the nutritional content for these ingredients in the context of the recipe "{recipe_name}":\n'
            f"Ingredients: {', '.join(ingredients)}"
        )
        await self._moderate(user_prompt, NUTRITION_SAFETY)

        data = await self._json_completion(system_prompt, user_prompt, temperature=0.2)
        return self._validate(MacroEstimate, data)

    async def estimate_recipe_nutrition(self, recipe_name: str, ingredients: list[str]) -> MacroEstimate:
        """Macro totals for a whole recipe (all servings combined)."""
        system_prompt = f"""You are an expert nutritionist. Estimate the total nutritional content of the whole recipe.
Return JSON only:
{MACRO_JSON_SHAPE}

Report totals for the entire recipe as written, not per serving."""

        user_prompt = f"Recipe name: {recipe_name}\nIngredients: {', '.join(ingredients)}"
        await self._moderate(user_prompt, NUTRITION_SAFETY)

        data = await self._json_completion(system_prompt, user_prompt, temperature=0.2)
        return self._validate(MacroEstimate, data)

    async def get_nutritional_analysis(self, recipe_name: str, ingredients: list[str]) -> NutritionalEstimate:
        """Per-serving estimate phrased by the model, with its own serving size."""
        system_prompt = """You are an expert nutritionist. Analyze the provided recipe and its ingredients to estimate the nutritional information per serving.

Return JSON only:
{
  "calories": "string, e.g. 450 kcal",
  "protein": "string, e.g. 20g",
  "fat": "string",
  "carbohydrates": "string",
  "fiber": "string",
  "sugar": "string",
  "serving_size": "the serving size used for the calculation",
  "disclaimer": "a brief disclaimer that this is an AI-generated estimate and not a substitute for professional nutritional advice"
}"""

        user_prompt = f"Recipe name: {recipe_name}\nIngredients: {', '.join(ingredients)}"
        await self._moderate(user_prompt, NUTRITION_SAFETY)

        data = await self._json_completion(system_prompt, user_prompt, temperature=0.2)
        return self._validate(NutritionalEstimate, data)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _json_completion(
        self,
        system_prompt: str,
        user_content,
        model: Optional[str] = None,
        temperature: float = 0.5,
    ) -> dict:
        """Run a JSON-mode chat completion and return the decoded object."""
        try:
            response = await self.client.chat.completions.create(
                model=model or settings.openai_text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise AIServiceError(f"Model call failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIServiceError("Model returned no output")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise AIServiceError(f"Model returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise AIServiceError("Model returned JSON that is not an object")
        return data

    async def _moderate(self, text: str, thresholds: dict[str, float]):
        """Raise ContentBlockedError if any category score reaches its threshold."""
        if not self.moderation_enabled or not thresholds:
            return

        try:
            result = await self.client.moderations.create(input=text)
        except OpenAIError as e:
            raise AIServiceError(f"Moderation call failed: {e}") from e

        scores = result.results[0].category_scores
        for category, threshold in thresholds.items():
            score = getattr(scores, category, None) or 0
            if score >= threshold:
                logger.warning(f"Request blocked by content safety: {category}={score:.2f}")
                raise ContentBlockedError(f"Request blocked by content safety ({category})")

    def _parse_recipe_ideas(self, data: dict) -> list[RecipeIdea]:
        raw = data.get("recipes")
        if not isinstance(raw, list):
            raise AIServiceError("Model output is missing a recipes list")

        ideas = []
        for item in raw:
            try:
                ideas.append(RecipeIdea.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping malformed recipe from model output ({e.error_count()} errors)")
        return ideas

    def _validate(self, model_cls, data: dict):
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            raise AIServiceError(f"Model output did not match {model_cls.__name__}: {e.error_count()} errors") from e


@lru_cache
def get_ai_service() -> AIService:
    """Get cached AI service instance."""
    return AIService()
