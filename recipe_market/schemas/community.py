"""Pydantic schemas for community recipe routes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from recipe_market.adapters.rate_limit.base import RateLimitOperation


class PublishRecipeRequest(BaseModel):
    """Recipe submitted for publication to the community listing."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=120)
    emoji: str = Field("🍌", max_length=16)
    tagline: str = Field("", max_length=200)
    description: str = Field("", max_length=2000)
    master_prompt: str = Field(..., min_length=1, description="Prompt template with {input} placeholders.")
    inputs: list[dict[str, Any]] = Field(default_factory=list)
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    remixable: bool = True


class CooldownStatusResponse(BaseModel):
    """Remaining cooldown for an operation, for display purposes."""

    operation: RateLimitOperation
    wait_ms: int = Field(..., ge=0)
    wait_display: str = Field(..., description="Human-readable wait such as '1m 30s'.")
    allowed: bool
