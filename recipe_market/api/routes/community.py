import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status

from recipe_market.adapters.rate_limit.base import RateLimitOperation
from recipe_market.core.errors import StorageAppError
from recipe_market.core.rate_limit import (
    get_client_id,
    get_services,
    require_cooldown,
)
from recipe_market.schemas.community import CooldownStatusResponse, PublishRecipeRequest
from recipe_market.services.container import ServiceContainer
from recipe_market.utils.timing import format_wait_time

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Community"])

# Operations whose cooldown is tracked per recipe rather than per client.
_PER_RECIPE_OPERATIONS = {
    RateLimitOperation.INCREMENT_USAGE,
    RateLimitOperation.TOGGLE_FAVORITE,
}


@router.get("/community/recipes")
async def list_community_recipes(
    services: ServiceContainer = Depends(get_services),
) -> list[dict[str, Any]]:
    """List published community recipes.

    Served from the local listing cache; a cache miss waits for the community
    backend and surfaces its failure as 502.

    Returns:
        list[dict]: Published recipe rows.
    """
    return await services.listing_cache.fetch_with_cache()


@router.post(
    "/community/recipes",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_cooldown(RateLimitOperation.PUBLISH_RECIPE))],
)
async def publish_recipe(
    recipe: PublishRecipeRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    """Publish a recipe, then invalidate the cached community listing.

    Raises:
        HTTPException: 429 while the publish cooldown is running.
    """
    published = await services.community.publish_recipe(
        recipe.model_dump(), client_id=get_client_id(request)
    )
    try:
        await services.listing_cache.invalidate()
    except StorageAppError as exc:
        # The recipe is already published at this point.
        logger.error(
            "community.invalidate_failed",
            extra={"cache_key": services.listing_cache.cache_key, "error_code": exc.code},
        )
    return published


@router.post(
    "/community/recipes/{recipe_id}/favorite",
    dependencies=[
        Depends(require_cooldown(RateLimitOperation.TOGGLE_FAVORITE, per_recipe=True))
    ],
)
async def toggle_favorite(
    recipe_id: str,
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    return await services.community.toggle_favorite(recipe_id, client_id=get_client_id(request))


@router.post(
    "/community/recipes/{recipe_id}/usage",
    dependencies=[
        Depends(require_cooldown(RateLimitOperation.INCREMENT_USAGE, per_recipe=True))
    ],
)
async def increment_usage(
    recipe_id: str,
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    return await services.community.increment_usage(recipe_id)


@router.get("/rate-limits/{operation}", response_model=CooldownStatusResponse)
async def get_cooldown_status(
    operation: RateLimitOperation,
    request: Request,
    recipe_id: str = Query("", description="Recipe id for per-recipe operations."),
    services: ServiceContainer = Depends(get_services),
) -> CooldownStatusResponse:
    """Report the remaining cooldown without consuming it."""
    if operation in _PER_RECIPE_OPERATIONS:
        discriminator = f"{get_client_id(request)}:{recipe_id}"
    else:
        discriminator = get_client_id(request)

    wait_ms = services.rate_limiter.peek_remaining(operation, discriminator)
    return CooldownStatusResponse(
        operation=operation,
        wait_ms=wait_ms,
        wait_display=format_wait_time(wait_ms),
        allowed=wait_ms == 0,
    )
