"""Image decoding and model-input preparation.

Decoding applies the EXIF orientation and converts to RGB. Detection input
is produced with a scale-fill policy: the image is stretched to the model's
input size rather than letterboxed.
"""

from __future__ import annotations

import io
import struct
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

if TYPE_CHECKING:
    from numpy.typing import NDArray


class ImageDecodeError(ValueError):
    """Raised when input bytes cannot be turned into an RGB image."""


class ImagePreprocessor:
    """Decodes uploaded images into HxWx3 RGB uint8 arrays."""

    def __init__(self, max_image_pixels: int) -> None:
        self._max_image_pixels = max_image_pixels

    def decode_image(self, image_bytes: bytes) -> NDArray[np.uint8]:
        """Decode raw image bytes into an RGB uint8 numpy array.

        Args:
            image_bytes: Raw file bytes (any format Pillow can read).

        Returns:
            HxWx3 RGB uint8 numpy array, EXIF orientation applied.

        Raises:
            ImageDecodeError: If the bytes are empty, not an image, or the
                image exceeds the configured pixel limit.
        """
        if not image_bytes:
            raise ImageDecodeError("Empty image payload")

        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                width, height = img.size
                if width * height > self._max_image_pixels:
                    raise ImageDecodeError(
                        f"Image has {width * height} pixels, limit is {self._max_image_pixels}"
                    )
                oriented = ImageOps.exif_transpose(img)
                rgb = oriented.convert("RGB")
        except ImageDecodeError:
            raise
        except (
            UnidentifiedImageError,
            OSError,
            ValueError,
            SyntaxError,
            struct.error,
            Image.DecompressionBombError,
        ) as exc:
            raise ImageDecodeError(f"Could not decode image: {exc}") from exc

        return np.asarray(rgb, dtype=np.uint8)


def scale_fill(image: NDArray[np.uint8], width: int, height: int) -> NDArray[np.float32]:
    """Stretch an RGB image to (height, width) and build a model input tensor.

    Returns:
        Float32 tensor of shape (1, 3, height, width) scaled to 0..1.
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ImageDecodeError(f"Expected an HxWx3 RGB array, got shape {image.shape}")

    resized = Image.fromarray(image).resize((width, height), Image.Resampling.BILINEAR)
    tensor = np.asarray(resized, dtype=np.float32) / 255.0
    return np.ascontiguousarray(tensor.transpose(2, 0, 1)[np.newaxis, ...])
