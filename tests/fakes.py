"""Test doubles shared across test modules."""

from typing import Any

from recipe_market.adapters.community.base import AbstractCommunityClient
from recipe_market.adapters.imaging.base import AbstractImageCompactor


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.current = start_ms

    def __call__(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms


class TruncatingCompactor(AbstractImageCompactor):
    """Records calls and "compacts" by keeping a prefix of the data."""

    def __init__(self, keep_chars: int = 32) -> None:
        self.keep_chars = keep_chars
        self.calls: list[tuple[int, int, float]] = []

    async def compact(self, image_data: str, max_width_px: int, quality: float) -> str:
        self.calls.append((len(image_data), max_width_px, quality))
        return image_data[: self.keep_chars]


class FakeCommunityClient(AbstractCommunityClient):
    """In-memory community backend."""

    def __init__(self, recipes: list[dict[str, Any]] | None = None) -> None:
        self.recipes = list(recipes or [])
        self.fetch_calls = 0
        self.favorites: list[tuple[str, str]] = []
        self.usage: list[str] = []
        self.closed = False

    async def fetch_listing(self) -> list[dict[str, Any]]:
        self.fetch_calls += 1
        return list(self.recipes)

    async def publish_recipe(self, recipe: dict[str, Any], *, client_id: str) -> dict[str, Any]:
        row = {"id": f"recipe-{len(self.recipes) + 1}", **recipe}
        self.recipes.append(row)
        return row

    async def toggle_favorite(self, recipe_id: str, *, client_id: str) -> dict[str, Any]:
        self.favorites.append((recipe_id, client_id))
        return {"recipe_id": recipe_id, "favorited": True}

    async def increment_usage(self, recipe_id: str) -> dict[str, Any]:
        self.usage.append(recipe_id)
        return {"recipe_id": recipe_id, "usage_count": self.usage.count(recipe_id)}

    async def aclose(self) -> None:
        self.closed = True
