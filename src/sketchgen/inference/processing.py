"""Conversion between bitmaps and model tensors."""

from typing import Optional

import numpy as np
from PIL import Image

from ..bitmap import Bitmap
from ..errors import InvalidInput
from .engine import TensorShape

RGB_CHANNELS = 3

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def _check_bitmap(bitmap) -> None:
    if not isinstance(bitmap, Bitmap):
        raise InvalidInput(f"Expected a Bitmap, got {type(bitmap).__name__}")
    if bitmap.width <= 0 or bitmap.height <= 0:
        raise InvalidInput(
            f"Bitmap must have positive dimensions, got {bitmap.width}x{bitmap.height}"
        )


def _span(src: int, dst: int) -> tuple[int, int, int]:
    """(source offset, destination offset, length) for a centered crop or pad."""
    if src >= dst:
        return (src - dst) // 2, 0, dst
    return 0, (dst - src) // 2, src


def crop_or_pad(bitmap: Bitmap, target_width: int, target_height: int) -> Bitmap:
    """
    Center-crop or zero-pad a bitmap to exactly target_width x target_height.

    Each axis is handled independently: cropped when the source is larger,
    padded with transparent black when it is smaller.
    """
    if bitmap.width == target_width and bitmap.height == target_height:
        return bitmap

    src_x, dst_x, w = _span(bitmap.width, target_width)
    src_y, dst_y, h = _span(bitmap.height, target_height)

    out = np.zeros((target_height, target_width), dtype=np.uint32)
    out[dst_y:dst_y + h, dst_x:dst_x + w] = bitmap.pixels[src_y:src_y + h, src_x:src_x + w]
    return Bitmap(out)


def resize_nearest(bitmap: Bitmap, target_width: int, target_height: int) -> Bitmap:
    """Resize with nearest-neighbour sampling; no blending, hard edges survive."""
    if bitmap.size == (target_width, target_height):
        return bitmap

    image = bitmap.to_image().resize(
        (target_width, target_height), Image.Resampling.NEAREST
    )
    return Bitmap.from_image(image)


def preprocess(
    bitmap: Bitmap,
    target_width: int,
    target_height: int,
    dtype: np.dtype,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Turn an arbitrary bitmap into a (1, H, W, 3) model input tensor.

    The bitmap is center-cropped to a square of its shorter side, resized
    with nearest-neighbour sampling, and its RGB values (0-255, unscaled)
    are cast to ``dtype``.

    Args:
        bitmap: Input drawing, any size
        target_width: Model input width
        target_height: Model input height
        dtype: Model input element type
        out: Buffer to overwrite in place; allocated if omitted

    Returns:
        The filled input buffer

    Raises:
        InvalidInput: If the bitmap has a non-positive dimension
    """
    _check_bitmap(bitmap)

    crop_size = min(bitmap.width, bitmap.height)
    square = crop_or_pad(bitmap, crop_size, crop_size)
    resized = resize_nearest(square, target_width, target_height)

    shape = (1, target_height, target_width, RGB_CHANNELS)
    if out is None:
        out = np.empty(shape, dtype=dtype)
    elif out.shape != shape or out.dtype != np.dtype(dtype):
        raise ValueError(
            f"Input buffer is {out.shape}/{out.dtype}, expected {shape}/{np.dtype(dtype)}"
        )

    out[0] = resized.to_rgb()
    return out


def narrow_to_uint8(values: np.ndarray) -> np.ndarray:
    """
    Narrow raw model output to 8-bit channel values.

    Floats are first cast to a 32-bit int the saturating way (truncate toward
    zero, NaN -> 0, anything past the int32 range pins to its bound), then
    only the low-order 8 bits are kept (two's complement), so 256 -> 0,
    -1 -> 255, +inf -> 255 and -inf -> 0. Channel values are never clamped
    to 0-255.
    """
    values = np.asarray(values)
    if values.dtype == np.uint8:
        return values
    if np.issubdtype(values.dtype, np.integer):
        return (values.astype(np.int64) & 0xFF).astype(np.uint8)

    v = np.nan_to_num(values.astype(np.float64), nan=0.0, posinf=INT32_MAX, neginf=INT32_MIN)
    v = np.clip(np.trunc(v), INT32_MIN, INT32_MAX).astype(np.int64)
    return (v & 0xFF).astype(np.uint8)


def pack_rgb(rgb: np.ndarray) -> np.ndarray:
    """Pack (..., 3) channel values into ``(R << 16) | (G << 8) | B`` uint32s."""
    channels = narrow_to_uint8(rgb).astype(np.uint32)
    return (channels[..., 0] << 16) | (channels[..., 1] << 8) | channels[..., 2]


def postprocess(output_buffer: np.ndarray, shape: TensorShape) -> Bitmap:
    """
    Turn the model output tensor into an opaque bitmap.

    The buffer is read as interleaved R, G, B values in row-major order,
    three per pixel. The bitmap is ``shape.width`` x ``shape.height``.
    """
    if shape.channels != RGB_CHANNELS:
        raise ValueError(f"Output must have {RGB_CHANNELS} channels, got {shape.channels}")

    n_pixels = shape.width * shape.height
    flat = np.asarray(output_buffer).reshape(-1)
    if flat.size < n_pixels * RGB_CHANNELS:
        raise ValueError(
            f"Output buffer has {flat.size} values, need {n_pixels * RGB_CHANNELS}"
        )

    packed = pack_rgb(flat[:n_pixels * RGB_CHANNELS].reshape(n_pixels, RGB_CHANNELS))
    return Bitmap.from_packed_rgb(packed, shape.width, shape.height)
