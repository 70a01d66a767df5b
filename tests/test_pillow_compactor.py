"""Tests for Pillow-based image compaction."""

import base64
import io

import pytest
from PIL import Image

from recipe_market.adapters.imaging.pillow_compactor import PillowImageCompactor
from recipe_market.services.history_service import HistoryService
from recipe_market.schemas.history import HistoryRecordInput


def _png_data_url(width: int, height: int, mode: str = "RGB") -> str:
    if mode == "noise":
        image = Image.effect_noise((width, height), 64)
    else:
        image = Image.new(mode, (width, height), (200, 120, 30, 128)[: len(mode)])
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def _decode(data_url: str) -> Image.Image:
    header, _, payload = data_url.partition(",")
    assert header == "data:image/jpeg;base64"
    return Image.open(io.BytesIO(base64.b64decode(payload)))


@pytest.mark.asyncio
async def test_wide_image_is_downscaled_preserving_aspect_ratio() -> None:
    result = await PillowImageCompactor().compact(_png_data_url(1600, 900), 800, 0.7)

    with _decode(result) as image:
        assert image.size == (800, 450)
        assert image.format == "JPEG"


@pytest.mark.asyncio
async def test_small_image_keeps_its_size() -> None:
    result = await PillowImageCompactor().compact(_png_data_url(120, 80), 200, 0.5)

    with _decode(result) as image:
        assert image.size == (120, 80)


@pytest.mark.asyncio
async def test_transparent_image_is_flattened() -> None:
    result = await PillowImageCompactor().compact(_png_data_url(64, 64, "RGBA"), 200, 0.5)

    with _decode(result) as image:
        assert image.mode == "RGB"


@pytest.mark.asyncio
async def test_bare_base64_is_accepted() -> None:
    data_url = _png_data_url(300, 300)
    bare = data_url.split(",", 1)[1]

    result = await PillowImageCompactor().compact(bare, 100, 0.7)

    with _decode(result) as image:
        assert image.size == (100, 100)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        "",
        "not base64 at all!",
        "data:image/png;base64," + base64.b64encode(b"definitely not a png").decode(),
        "data:text/plain,hello",
    ],
)
async def test_unreadable_input_is_returned_unchanged(payload: str) -> None:
    assert await PillowImageCompactor().compact(payload, 800, 0.7) == payload


@pytest.mark.asyncio
async def test_history_add_stores_compacted_artifact(store, clock) -> None:
    service = HistoryService(store, PillowImageCompactor(), clock=clock)
    original = _png_data_url(1200, 900, mode="noise")
    assert len(original) > 500_000

    result = await service.add(
        HistoryRecordInput(
            source_id="app1",
            display_name="Test",
            display_glyph="🍌",
            artifact_data=original,
        )
    )

    assert len(result) == 1
    record = result[0]
    assert len(record.artifact_data) < len(original)
    assert record.artifact_data.startswith("data:image/jpeg;base64,")
    assert record.id and record.created_at
    with _decode(record.artifact_data) as image:
        assert image.width == 800
