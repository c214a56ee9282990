"""ARGB bitmap container used at the edges of the pipeline."""

from dataclasses import dataclass

import numpy as np
from PIL import Image

OPAQUE_ALPHA = np.uint32(0xFF000000)


@dataclass
class Bitmap:
    """
    A 2-D grid of 32-bit ARGB pixels.

    ``pixels`` is a ``uint32`` array of shape ``(height, width)`` where each
    value is laid out as ``0xAARRGGBB``.
    """

    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 2:
            raise ValueError(f"Bitmap pixels must be 2-D, got shape {pixels.shape}")
        self.pixels = pixels.astype(np.uint32, copy=False)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height), matching PIL's convention."""
        return self.width, self.height

    def get_pixel(self, x: int, y: int) -> int:
        """Get the ARGB value at column x, row y."""
        return int(self.pixels[y, x])

    @classmethod
    def from_packed_rgb(cls, packed: np.ndarray, width: int, height: int) -> "Bitmap":
        """Build a bitmap from flat ``0x00RRGGBB`` values, forcing opaque alpha."""
        packed = np.asarray(packed, dtype=np.uint32).reshape(height, width)
        return cls(packed | OPAQUE_ALPHA)

    @classmethod
    def from_rgb(cls, rgb: np.ndarray) -> "Bitmap":
        """Build an opaque bitmap from a uint8 (H, W, 3) RGB array."""
        rgb = np.asarray(rgb, dtype=np.uint32)
        if rgb.ndim != 3 or rgb.shape[2] != 3:
            raise ValueError(f"Expected (H, W, 3) RGB array, got shape {rgb.shape}")
        packed = (rgb[..., 0] << 16) | (rgb[..., 1] << 8) | rgb[..., 2]
        return cls(packed | OPAQUE_ALPHA)

    @classmethod
    def from_image(cls, image: Image.Image) -> "Bitmap":
        """Convert a PIL image (any mode) to a bitmap."""
        rgba = np.asarray(image.convert("RGBA"), dtype=np.uint32)
        pixels = (
            (rgba[..., 3] << 24)
            | (rgba[..., 0] << 16)
            | (rgba[..., 1] << 8)
            | rgba[..., 2]
        )
        return cls(pixels)

    def to_rgb(self) -> np.ndarray:
        """Convert to a uint8 (H, W, 3) RGB array, dropping alpha."""
        p = self.pixels
        rgb = np.stack([(p >> 16) & 0xFF, (p >> 8) & 0xFF, p & 0xFF], axis=-1)
        return rgb.astype(np.uint8)

    def to_image(self) -> Image.Image:
        """Convert to a PIL image (RGBA)."""
        alpha = ((self.pixels >> 24) & 0xFF).astype(np.uint8)
        rgba = np.concatenate([self.to_rgb(), alpha[..., None]], axis=-1)
        return Image.fromarray(rgba)
