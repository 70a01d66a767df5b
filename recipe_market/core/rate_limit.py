"""Cooldown dependencies for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes declare ``Depends(require_cooldown(...))`` only.
- Swap-friendly: the limiter lives behind ``AbstractRateLimiter``.
- Optimistic: admission is recorded before the action runs and is not rolled
  back if the action later fails.

Keying strategy:
- Every discriminator is namespaced by the caller's client id.
- Per-recipe operations additionally include the ``recipe_id`` path parameter.
- If the client id header is missing, fall back to the client IP.
"""

from __future__ import annotations

import hashlib
import logging
import math
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, status

from recipe_market.adapters.rate_limit.base import RateLimitOperation
from recipe_market.core.config import settings
from recipe_market.services.container import ServiceContainer
from recipe_market.utils.timing import format_wait_time

logger = logging.getLogger(__name__)


def get_services(request: Request) -> ServiceContainer:
    """Return the components built at startup."""
    return request.app.state.services


def get_client_id(request: Request) -> str:
    """Identify the caller for cooldown bookkeeping.

    Args:
        request: FastAPI request.

    Returns:
        str: Namespaced client identifier.
    """

    header_value = request.headers.get(settings.app.client_id_header)
    if header_value:
        return f"client:{header_value}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _hash_client_id(client_id: str) -> str:
    """Hash the client id for logging without exposing it."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]


def build_discriminator(request: Request, *, per_recipe: bool) -> str:
    client_id = get_client_id(request)
    if per_recipe:
        return f"{client_id}:{request.path_params.get('recipe_id', '')}"
    return client_id


def require_cooldown(
    operation: RateLimitOperation, *, per_recipe: bool = False
) -> Callable[[Request], Awaitable[None]]:
    """Build a dependency that admits the request or raises HTTP 429.

    Args:
        operation: Guarded operation label.
        per_recipe: Whether the cooldown is tracked separately per recipe.

    Returns:
        An async FastAPI dependency.
    """

    async def enforce_cooldown(request: Request) -> None:
        """Record the action or reject it while its cooldown is running.

        Raises:
            HTTPException: 429 Too Many Requests when still cooling down.
        """

        if not settings.app.rate_limit_enabled:
            return

        limiter = get_services(request).rate_limiter
        discriminator = build_discriminator(request, per_recipe=per_recipe)
        result = limiter.check_and_record(operation, discriminator)

        if result.allowed:
            logger.info(
                "rate_limit.allowed",
                extra={
                    "operation": operation.value,
                    "client_hash": _hash_client_id(discriminator),
                },
            )
            return

        retry_after = max(1, math.ceil(result.wait_ms / 1000))
        logger.warning(
            "rate_limit.denied",
            extra={
                "operation": operation.value,
                "client_hash": _hash_client_id(discriminator),
                "wait_ms": result.wait_ms,
            },
        )

        headers: dict[str, str] = {}
        if settings.app.rate_limit_include_headers:
            headers["Retry-After"] = str(retry_after)
            headers["X-RateLimit-Wait-Ms"] = str(result.wait_ms)

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Please wait {format_wait_time(result.wait_ms)} before trying again.",
            headers=headers or None,
        )

    return enforce_cooldown
