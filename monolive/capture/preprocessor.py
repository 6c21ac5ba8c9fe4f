"""
Frame preprocessing to match the tracking engine's input contract:
optional grayscale conversion, then uniform rescale by the engine's
image scale.
"""
import math
import cv2
import numpy as np
from typing import Optional, Tuple
from dataclasses import dataclass
import logging

from monolive.core import Frame

logger = logging.getLogger(__name__)


@dataclass
class PreprocessConfig:
    """Configuration for frame preprocessing."""
    # Single-channel intensity (settings with Camera.RGB: 0)
    convert_grayscale: bool = False

    # Uniform scale, read back from the engine after initialization
    scale: float = 1.0


def rounded_size(width: int, height: int, scale: float) -> Tuple[int, int]:
    """(width, height) times scale, each rounded half away from zero."""
    return (
        int(math.floor(width * scale + 0.5)),
        int(math.floor(height * scale + 0.5)),
    )


def scaled_size(width: int, height: int, scale: float) -> Tuple[int, int]:
    """
    Target (width, height) for a uniform rescale.

    If either rounded dimension is non-positive the original size is
    returned and no rescale happens.
    """
    new_width, new_height = rounded_size(width, height, scale)

    if new_width <= 0 or new_height <= 0:
        return width, height
    return new_width, new_height


class FramePreprocessor:
    """
    Stateless frame normalization.

    Processing order:
    1. Grayscale conversion (if enabled)
    2. Rescale by config.scale (if != 1.0)

    The input frame is never modified; the returned Frame keeps its
    timestamp and frame_id.

    Example:
        preprocessor = FramePreprocessor(PreprocessConfig(scale=0.5))
        processed = preprocessor.process(frame)
    """

    def __init__(self, config: Optional[PreprocessConfig] = None):
        self.config = config or PreprocessConfig()
        self._warned_clamp = False

        logger.debug(
            f"FramePreprocessor: grayscale={self.config.convert_grayscale}, "
            f"scale={self.config.scale}"
        )

    def process(self, frame: Frame) -> Frame:
        """
        Process frame with configured preprocessing steps.

        Args:
            frame: Input frame

        Returns:
            New Frame object with processed image
        """
        image = frame.image

        if self.config.convert_grayscale:
            image = self._to_grayscale(image)

        if self.config.scale != 1.0:
            image = self._rescale(image)

        return Frame(
            image=image,
            timestamp=frame.timestamp,
            frame_id=frame.frame_id
        )

    @staticmethod
    def _to_grayscale(image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image
        if image.shape[2] == 1:
            return image[:, :, 0]
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def _rescale(self, image: np.ndarray) -> np.ndarray:
        height, width = image.shape[:2]
        new_width, new_height = rounded_size(width, height, self.config.scale)

        if new_width <= 0 or new_height <= 0:
            if not self._warned_clamp:
                logger.warning(
                    f"Scale {self.config.scale} gives non-positive size for "
                    f"{width}x{height}; passing frames through unscaled"
                )
                self._warned_clamp = True
            return image

        if (new_width, new_height) == (width, height):
            return image

        # INTER_AREA for downscaling, bilinear for upscaling
        interpolation = cv2.INTER_AREA if self.config.scale < 1.0 else cv2.INTER_LINEAR
        return cv2.resize(image, (new_width, new_height), interpolation=interpolation)
