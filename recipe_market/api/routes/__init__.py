from __future__ import annotations

from recipe_market.api.routes.community import router as community_router
from recipe_market.api.routes.health import router as health_router
from recipe_market.api.routes.history import router as history_router

__all__ = ["community_router", "health_router", "history_router"]
