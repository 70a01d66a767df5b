"""Persisted cache envelope."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CacheEnvelope(BaseModel):
    """A cached remote payload plus the time it was fetched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    payload: Any = Field(..., description="JSON-serializable remote result.")
    fetched_at_ms: int = Field(..., description="UNIX epoch milliseconds of the fetch.")

    def is_fresh(self, now_ms: int, freshness_window_ms: int) -> bool:
        return now_ms - self.fetched_at_ms < freshness_window_ms
