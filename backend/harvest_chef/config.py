"""Configuration management for harvest-chef."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    environment: str = "development"
    log_level: str = "info"

    # API Security (unset = open, dev mode)
    api_key: str | None = None

    # OpenAI
    openai_api_key: str
    openai_text_model: str = "gpt-4o-mini"
    openai_vision_model: str = "gpt-4o"
    openai_image_model: str = "dall-e-3"
    openai_timeout: float = 60.0
    content_moderation: bool = True

    # Open Food Facts
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "Harvest-AI-Chef/1.0 (contact@harvest-ai-chef.app)"
    off_timeout: float = 15.0

    # Recipes
    recipe_count: int = 3
    placeholder_image_url: str = "https://placehold.co/600x400.png"

    # Nutrition
    # Fraction of the 100g catalog basis assumed to end up in one recipe.
    # Heuristic with no stated derivation; see DESIGN.md.
    portion_factor: float = 0.5

    # Sessions (in memory; idle ones expire, oldest evicted past the cap)
    session_ttl_seconds: float = 7200.0
    max_sessions: int = 1000

    # Paths
    favorites_db: str = "./data/favorites.db"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
