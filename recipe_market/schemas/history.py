"""Pydantic schemas for local generation history."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HistoryRecordInput(BaseModel):
    """A generated artifact as submitted by the caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_id: str = Field(..., description="Identifier of the recipe that produced the artifact.")
    display_name: str = Field(..., description="Recipe name shown next to the artifact.")
    display_glyph: str = Field(..., description="Emoji or short glyph for the recipe.")
    artifact_data: str = Field(
        ..., min_length=1, description="Self-contained encoded image (data URL or base64)."
    )
    input_preview: str | None = Field(
        default=None, description="Optional encoded thumbnail of the input image."
    )


class HistoryRecord(HistoryRecordInput):
    """A persisted history entry."""

    id: str = Field(..., description="Opaque, locally unique identifier.")
    created_at: str = Field(..., description="ISO-8601 UTC creation timestamp.")


class HistoryCountResponse(BaseModel):
    count: int
