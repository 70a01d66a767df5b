from abc import ABC, abstractmethod
from typing import Any


class AbstractCommunityClient(ABC):
	"""Interface for the hosted backend that stores published recipes."""

	@abstractmethod
	async def fetch_listing(self) -> list[dict[str, Any]]:
		"""Fetch every published community recipe.

		Returns:
			list[dict[str, Any]]: JSON-serializable recipe rows.

		Raises:
			RemoteServiceAppError: If the backend call fails.
		"""
		...

	@abstractmethod
	async def publish_recipe(self, recipe: dict[str, Any], *, client_id: str) -> dict[str, Any]:
		"""Publish a recipe and return the stored row."""
		...

	@abstractmethod
	async def toggle_favorite(self, recipe_id: str, *, client_id: str) -> dict[str, Any]:
		"""Toggle the caller's favorite flag on a recipe."""
		...

	@abstractmethod
	async def increment_usage(self, recipe_id: str) -> dict[str, Any]:
		"""Bump the run counter of a recipe."""
		...

	async def aclose(self) -> None:
		"""Release network resources."""
		return None
