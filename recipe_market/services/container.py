"""Construction of the long-lived components shared by every request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from recipe_market.adapters.community.base import AbstractCommunityClient
from recipe_market.adapters.community.http_client import HttpCommunityClient
from recipe_market.adapters.imaging.base import AbstractImageCompactor
from recipe_market.adapters.imaging.pillow_compactor import PillowImageCompactor
from recipe_market.adapters.rate_limit.base import AbstractRateLimiter, RateLimitOperation
from recipe_market.adapters.rate_limit.in_memory import InMemoryCooldownRateLimiter
from recipe_market.adapters.storage.base import AbstractKeyValueStore
from recipe_market.adapters.storage.in_memory import InMemoryKeyValueStore
from recipe_market.adapters.storage.json_file import JsonFileKeyValueStore
from recipe_market.core.config import PROJECT_ROOT, Settings, settings
from recipe_market.services.history_service import HistoryService
from recipe_market.services.listing_cache import ReadThroughCache


@dataclass
class ServiceContainer:
    """Components constructed once at startup and injected into routes."""

    rate_limiter: AbstractRateLimiter
    store: AbstractKeyValueStore
    community: AbstractCommunityClient
    listing_cache: ReadThroughCache[list[dict[str, Any]]]
    history: HistoryService

    async def aclose(self) -> None:
        await self.listing_cache.aclose()
        await self.community.aclose()


def cooldowns_from_settings(cfg: Settings) -> dict[RateLimitOperation, int]:
    """Map configured cooldowns onto rate-limited operations."""
    return {
        RateLimitOperation.INCREMENT_USAGE: cfg.app.cooldown_increment_usage_ms,
        RateLimitOperation.TOGGLE_FAVORITE: cfg.app.cooldown_toggle_favorite_ms,
        RateLimitOperation.PUBLISH_RECIPE: cfg.app.cooldown_publish_recipe_ms,
        RateLimitOperation.SET_USERNAME: cfg.app.cooldown_set_username_ms,
        RateLimitOperation.UPLOAD_IMAGE: cfg.app.cooldown_upload_image_ms,
    }


def create_store(cfg: Settings) -> AbstractKeyValueStore:
    """Instantiate the configured key-value store backend."""
    if cfg.storage.backend == "memory":
        return InMemoryKeyValueStore(max_bytes=cfg.storage.max_bytes)

    path = PROJECT_ROOT / cfg.storage.path
    return JsonFileKeyValueStore(path, max_bytes=cfg.storage.max_bytes)


def build_services(
    cfg: Settings | None = None,
    *,
    store: AbstractKeyValueStore | None = None,
    community: AbstractCommunityClient | None = None,
    compactor: AbstractImageCompactor | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> ServiceContainer:
    """Build every shared component from settings.

    Any component can be supplied explicitly, which is how tests swap in
    fakes without touching the environment.

    Args:
        cfg: Settings to build from; defaults to the global settings.
        store: Optional key-value store override.
        community: Optional community backend client override.
        compactor: Optional image compactor override.
        rate_limiter: Optional rate limiter override.

    Returns:
        ServiceContainer: Fully wired components.
    """
    cfg = cfg or settings

    store = store or create_store(cfg)
    community = community or HttpCommunityClient(
        base_url=cfg.community.base_url,
        api_key=cfg.community.api_key,
        timeout_seconds=cfg.community.timeout_seconds,
    )
    rate_limiter = rate_limiter or InMemoryCooldownRateLimiter(
        cooldowns_ms=cooldowns_from_settings(cfg)
    )

    listing_cache: ReadThroughCache[list[dict[str, Any]]] = ReadThroughCache(
        store,
        community.fetch_listing,
        cache_key=cfg.cache.listing_key,
        freshness_window_ms=cfg.cache.freshness_window_ms,
        refresh_policy=cfg.cache.refresh_policy,
    )
    history = HistoryService(
        store,
        compactor or PillowImageCompactor(),
        history_key=cfg.history.key,
        max_items=cfg.history.max_items,
        quota_retry_items=cfg.history.quota_retry_items,
        artifact_max_width=cfg.history.artifact_max_width,
        artifact_quality=cfg.history.artifact_quality,
        preview_max_width=cfg.history.preview_max_width,
        preview_quality=cfg.history.preview_quality,
    )

    return ServiceContainer(
        rate_limiter=rate_limiter,
        store=store,
        community=community,
        listing_cache=listing_cache,
        history=history,
    )
