from abc import ABC, abstractmethod


class AbstractImageCompactor(ABC):
    """Interface for lossy image downsizing before images are persisted."""

    @abstractmethod
    async def compact(self, image_data: str, max_width_px: int, quality: float) -> str:
        """Downscale and re-encode an encoded image.

        Args:
            image_data: Self-contained encoded image (data URL or bare base64).
            max_width_px: Maximum pixel width of the result.
            quality: Lossy encoder quality between 0 and 1.

        Returns:
            str: The compacted image, or ``image_data`` unchanged when it
                cannot be processed. Implementations must not raise.
        """
        ...
