"""
Kitchen sessions and favorites.

A session holds one client's working state: the editable ingredient list,
the latest suggestions and the latest search results. It lives in memory
only. Favorites are the one persisted piece, stored as a JSON array in a
key-value slot per client inside a local SQLite file.

Every async action takes a token from the session's RequestTracker. When the
action finishes, its result is applied only if no newer action for the same
slot was started in the meantime.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

import aiosqlite

from harvest_chef.config import get_settings
from harvest_chef.models.ingredients import Ingredient
from harvest_chef.models.recipes import Recipe
from harvest_chef.models.session import KitchenSession
from harvest_chef.services.ai import AIServiceError
from harvest_chef.services.ingredients import IngredientIdentifier, InvalidImageError
from harvest_chef.services.recipes import RecipeGenerator

logger = logging.getLogger(__name__)
settings = get_settings()


class SessionNotFoundError(KeyError):
    """No session with that id."""


class RequestTracker:
    """Monotonic request tokens per named slot."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}

    def issue(self, slot: str) -> int:
        token = next(self._counter)
        self._latest[slot] = token
        return token

    def is_current(self, slot: str, token: int) -> bool:
        return self._latest.get(slot) == token


# =============================================================================
# Favorites
# =============================================================================


class FavoritesStore:
    """Favorite recipes per client, keyed by recipe id."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = Path(db_path or settings.favorites_db)
        self.db: Optional[aiosqlite.Connection] = None
        # read-modify-write of a client's slot must not interleave
        self._locks: dict[str, asyncio.Lock] = {}

    async def init(self):
        """Open the SQLite file and create the key-value table."""
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = await aiosqlite.connect(self.db_path)
        self.db.row_factory = aiosqlite.Row

        await self.db.executescript("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,  -- JSON
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        """)
        await self.db.commit()

        logger.info(f"Favorites store initialized at {self.db_path}")

    async def close(self):
        if self.db:
            await self.db.close()

    async def list(self, client_id: str) -> list[Recipe]:
        """Favorites for a client, in the order they were added."""
        cursor = await self.db.execute("SELECT value FROM kv_store WHERE key = ?", (self._key(client_id),))
        row = await cursor.fetchone()
        if not row:
            return []

        try:
            items = json.loads(row["value"])
        except json.JSONDecodeError:
            logger.error(f"Corrupt favorites slot for {client_id}; treating as empty")
            return []

        return [Recipe.model_validate(item) for item in items]

    async def is_favorite(self, client_id: str, recipe_id: str) -> bool:
        return any(r.id == recipe_id for r in await self.list(client_id))

    async def toggle(self, client_id: str, recipe: Recipe) -> bool:
        """Add the recipe if absent, remove it if present. Returns new membership."""
        async with self._lock(client_id):
            favorites = await self.list(client_id)

            if any(r.id == recipe.id for r in favorites):
                favorites = [r for r in favorites if r.id != recipe.id]
                is_favorite = False
            else:
                favorites.append(recipe)
                is_favorite = True

            await self._save(client_id, favorites)
            return is_favorite

    async def remove(self, client_id: str, recipe_id: str) -> bool:
        """Remove by id. Returns True if something was removed."""
        async with self._lock(client_id):
            favorites = await self.list(client_id)
            kept = [r for r in favorites if r.id != recipe_id]
            if len(kept) == len(favorites):
                return False
            await self._save(client_id, kept)
            return True

    def _lock(self, client_id: str) -> asyncio.Lock:
        return self._locks.setdefault(client_id, asyncio.Lock())

    async def _save(self, client_id: str, favorites: list[Recipe]):
        value = json.dumps([r.model_dump(mode="json") for r in favorites])
        await self.db.execute(
            """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP""",
            (self._key(client_id), value),
        )
        await self.db.commit()

    def _key(self, client_id: str) -> str:
        return f"favorites:{client_id}"


# =============================================================================
# Sessions
# =============================================================================


class SessionService:
    """
    In-memory kitchen sessions.

    A session untouched for longer than ``ttl_seconds`` expires. Creating a
    session beyond ``max_sessions`` evicts the least recently used ones.
    """

    def __init__(
        self,
        identifier: IngredientIdentifier,
        generator: RecipeGenerator,
        ttl_seconds: Optional[float] = None,
        max_sessions: Optional[int] = None,
        clock=time.monotonic,
    ):
        self.identifier = identifier
        self.generator = generator
        self.ttl_seconds = settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.max_sessions = settings.max_sessions if max_sessions is None else max_sessions
        self._clock = clock
        self._sessions: dict[str, KitchenSession] = {}
        self._trackers: dict[str, RequestTracker] = {}
        self._last_seen: dict[str, float] = {}

    def create(self, client_id: str) -> KitchenSession:
        self._expire_idle()
        while self._sessions and len(self._sessions) >= self.max_sessions:
            oldest = min(self._last_seen, key=self._last_seen.__getitem__)
            logger.info(f"Session limit reached, evicting {oldest}")
            self._drop(oldest)

        session = KitchenSession(session_id=uuid.uuid4().hex, client_id=client_id)
        self._sessions[session.session_id] = session
        self._trackers[session.session_id] = RequestTracker()
        self._last_seen[session.session_id] = self._clock()
        return session

    def get(self, session_id: str) -> KitchenSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        now = self._clock()
        if now - self._last_seen[session_id] > self.ttl_seconds:
            logger.info(f"Session {session_id} expired")
            self._drop(session_id)
            raise SessionNotFoundError(session_id)

        self._last_seen[session_id] = now
        return session

    def delete(self, session_id: str):
        self.get(session_id)
        self._drop(session_id)

    def _drop(self, session_id: str):
        self._sessions.pop(session_id, None)
        self._trackers.pop(session_id, None)
        self._last_seen.pop(session_id, None)

    def _expire_idle(self):
        now = self._clock()
        expired = [sid for sid, seen in self._last_seen.items() if now - seen > self.ttl_seconds]
        for session_id in expired:
            self._drop(session_id)
        if expired:
            logger.info(f"Expired {len(expired)} idle sessions")

    # -------------------------------------------------------------------------
    # Ingredient list editing
    # -------------------------------------------------------------------------

    def add_ingredient(self, session_id: str, name: str) -> KitchenSession:
        """Add a manual ingredient. A case-insensitive duplicate is a no-op."""
        session = self.get(session_id)
        name = name.strip()
        if not name:
            raise ValueError("Ingredient name is required")

        if self._find_by_name(session, name) is None:
            session.ingredients.append(Ingredient(id=f"manual-{uuid.uuid4().hex}", name=name, confidence=1.0))
        return session

    def update_ingredient(
        self,
        session_id: str,
        ingredient_id: str,
        name: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> KitchenSession:
        session = self.get(session_id)
        ingredient = self._find_by_id(session, ingredient_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise ValueError("Ingredient name is required")
            other = self._find_by_name(session, name)
            if other is not None and other.id != ingredient_id:
                raise ValueError(f"'{name}' is already on the list")
            ingredient.name = name

        if confidence is not None:
            ingredient.confidence = confidence

        return session

    def remove_ingredient(self, session_id: str, ingredient_id: str) -> KitchenSession:
        session = self.get(session_id)
        ingredient = self._find_by_id(session, ingredient_id)
        session.ingredients = [i for i in session.ingredients if i.id != ingredient.id]
        return session

    # -------------------------------------------------------------------------
    # Async actions
    # -------------------------------------------------------------------------

    async def identify_from_image(
        self, session_id: str, image_bytes: bytes, mime_type: Optional[str] = None
    ) -> KitchenSession:
        """Replace the ingredient list with what the photo shows and clear suggestions."""
        session = self.get(session_id)
        tracker = self._trackers[session_id]
        token = tracker.issue("ingredients")

        try:
            ingredients = await self.identifier.identify(image_bytes, mime_type)
        except InvalidImageError:
            if tracker.is_current("ingredients", token):
                session.notice = "That file doesn't look like an image. Please try another one."
            raise
        except AIServiceError:
            if tracker.is_current("ingredients", token):
                session.notice = "Could not identify ingredients from the image. Please try another one."
            raise

        if not tracker.is_current("ingredients", token):
            logger.warning(f"Discarding stale identification result for session {session_id}")
            return session

        session.ingredients = ingredients
        session.recipes = []
        session.notice = None if ingredients else "No ingredients found in that photo."
        return session

    async def suggest_recipes(self, session_id: str) -> KitchenSession:
        session = self.get(session_id)
        names = [i.name for i in session.ingredients]
        if not names:
            session.notice = "Please add some ingredients first."
            raise ValueError(session.notice)

        tracker = self._trackers[session_id]
        token = tracker.issue("recipes")
        recipes = await self.generator.suggest_recipes(names)

        if not tracker.is_current("recipes", token):
            logger.warning(f"Discarding stale recipe suggestions for session {session_id}")
            return session

        session.recipes = recipes
        session.notice = None if recipes else "No recipes could be suggested. Please try again."
        return session

    async def search_recipes(self, session_id: str, query: str) -> KitchenSession:
        session = self.get(session_id)
        query = query.strip()
        if not query:
            raise ValueError("Search query is required")

        tracker = self._trackers[session_id]
        token = tracker.issue("search")
        recipes = await self.generator.find_recipes_by_name(query)

        if not tracker.is_current("search", token):
            logger.warning(f"Discarding stale search results for session {session_id}")
            return session

        session.search_results = recipes
        session.notice = None if recipes else f"No recipes found for '{query}'."
        return session

    def find_recipe(self, session_id: str, recipe_id: str) -> Recipe:
        """A recipe currently shown in the session (suggestions or search)."""
        session = self.get(session_id)
        for recipe in [*session.recipes, *session.search_results]:
            if recipe.id == recipe_id:
                return recipe
        raise KeyError(recipe_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _find_by_id(self, session: KitchenSession, ingredient_id: str) -> Ingredient:
        for ingredient in session.ingredients:
            if ingredient.id == ingredient_id:
                return ingredient
        raise KeyError(ingredient_id)

    def _find_by_name(self, session: KitchenSession, name: str) -> Optional[Ingredient]:
        key = name.lower()
        for ingredient in session.ingredients:
            if ingredient.name.lower() == key:
                return ingredient
        return None
