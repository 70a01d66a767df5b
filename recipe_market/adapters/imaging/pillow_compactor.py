"""Pillow-backed image compaction for history records."""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging

from PIL import Image, UnidentifiedImageError

from recipe_market.adapters.imaging.base import AbstractImageCompactor

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = "data:"


def _decode_image_data(image_data: str) -> bytes:
    """Extract raw bytes from a data URL or bare base64 string.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    payload = image_data
    if image_data.startswith(_DATA_URL_PREFIX):
        header, sep, payload = image_data.partition(",")
        if not sep or ";base64" not in header:
            raise ValueError("only base64 data URLs are supported")
    return base64.b64decode(payload, validate=True)


def compact_image_bytes(raw: bytes, max_width_px: int, quality: float) -> bytes:
    """Resize to at most ``max_width_px`` wide and re-encode as JPEG.

    Aspect ratio is preserved. Transparent images are flattened onto white
    since JPEG has no alpha channel.
    """
    with Image.open(io.BytesIO(raw)) as image:
        image.load()
        width, height = image.size
        if width > max_width_px:
            new_height = max(1, round(height * max_width_px / width))
            image = image.resize((max_width_px, new_height), Image.Resampling.LANCZOS)

        if image.mode in ("RGBA", "LA", "P"):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            image = background
        elif image.mode != "RGB":
            image = image.convert("RGB")

        output = io.BytesIO()
        jpeg_quality = min(95, max(1, round(quality * 100)))
        image.save(output, format="JPEG", quality=jpeg_quality, optimize=True)
        return output.getvalue()


class PillowImageCompactor(AbstractImageCompactor):
    """Downscale and JPEG re-encode images with Pillow.

    Decoding and encoding run in a worker thread so large images do not stall
    the event loop. Anything Pillow cannot read comes back unchanged.
    """

    async def compact(self, image_data: str, max_width_px: int, quality: float) -> str:
        if not image_data:
            return image_data

        try:
            raw = _decode_image_data(image_data)
            compacted = await asyncio.to_thread(
                compact_image_bytes, raw, max_width_px, quality
            )
        except (
            ValueError,
            binascii.Error,
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
        ) as exc:
            logger.warning(
                "image.compaction_failed",
                extra={"error_type": type(exc).__name__, "input_chars": len(image_data)},
            )
            return image_data

        encoded = base64.b64encode(compacted).decode("ascii")
        result = f"data:image/jpeg;base64,{encoded}"
        logger.debug(
            "image.compacted",
            extra={
                "input_chars": len(image_data),
                "output_chars": len(result),
                "max_width_px": max_width_px,
            },
        )
        return result
