"""
harvest-chef: FastAPI backend for photo-to-recipe suggestions.

Run with: uvicorn harvest_chef.main:app --reload

Architecture:
- Identifies ingredients in photos and generates recipes with OpenAI
- Pulls per-100g nutrition from Open Food Facts, filling gaps with AI estimates
- Keeps kitchen sessions in memory and favorites in a local SQLite file
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from harvest_chef import __version__
from harvest_chef.config import get_settings
from harvest_chef.api import health, food_data, ingredients, recipes, nutrition, sessions
from harvest_chef.services.ai import get_ai_service
from harvest_chef.services.food_data import FoodDataService
from harvest_chef.services.ingredients import IngredientIdentifier
from harvest_chef.services.recipes import RecipeGenerator
from harvest_chef.services.session import FavoritesStore, SessionService

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting harvest-chef backend...")

    food_data_service = FoodDataService()
    await food_data_service.init()
    app.state.food_data_service = food_data_service

    favorites_store = FavoritesStore()
    await favorites_store.init()
    app.state.favorites_store = favorites_store

    ai = get_ai_service()
    app.state.session_service = SessionService(
        IngredientIdentifier(ai),
        RecipeGenerator(ai, food_data_service),
    )
    logger.info("Services initialized")

    yield

    # Shutdown
    logger.info("Shutting down harvest-chef backend...")
    await food_data_service.close()
    await favorites_store.close()


app = FastAPI(
    title="harvest-chef",
    description="Recipe suggestions from ingredient photos, with nutrition analysis",
    version=__version__,
    lifespan=lifespan,
)

# CORS - allow frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def verify_api_key(request: Request, call_next):
    """Verify API key for protected endpoints."""
    public_paths = ["/", "/health", "/health/detailed", "/docs", "/openapi.json", "/redoc"]
    if request.url.path in public_paths:
        return await call_next(request)

    expected_key = settings.api_key

    # If no key configured, allow all (dev mode)
    if not expected_key:
        return await call_next(request)

    if request.headers.get("X-API-Key") != expected_key:
        client_host = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid API key attempt from {client_host}")
        return JSONResponse(
            status_code=401,
            content={"detail": "Invalid or missing API key"}
        )

    return await call_next(request)


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(food_data.router)  # /api/test-*, /api/food-data
app.include_router(ingredients.router)  # /api/ingredients
app.include_router(recipes.router)  # /api/recipes
app.include_router(nutrition.router)  # /api/nutrition
app.include_router(sessions.router)  # /api/sessions, /api/favorites


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "harvest-chef",
        "version": __version__,
        "description": "Recipe suggestions from ingredient photos, with nutrition analysis",
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "ingredients": "/api/ingredients",
            "recipes": "/api/recipes",
            "nutrition": "/api/nutrition",
            "sessions": "/api/sessions",
            "favorites": "/api/favorites",
            "test-nutrition": "/api/test-nutrition",
            "test-open-food-facts": "/api/test-open-food-facts",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "harvest_chef.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production,
    )
