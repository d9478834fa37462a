"""Color parsing and sRGB <-> linear conversion.

The pipeline composites in linear light and encodes to sRGB only when a
frame leaves the renderer, so configured display colors are linearized
before they become uniforms.
"""

import numpy as np
from numpy.typing import NDArray

RGB = tuple[float, float, float]


def parse_hex(value: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` / ``#rgb`` (leading ``#`` optional) into 0-255 ints.

    Raises:
        ValueError: If the string is not a valid hex color
    """
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    try:
        r, g, b = (int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid hex color: {value!r}") from None
    return r, g, b


def srgb_channel_to_linear(c: float) -> float:
    if c < 0.04045:
        return c * 0.0773993808
    return (c * 0.9478672986 + 0.0521327014) ** 2.4


def srgb_to_linear(value: str | RGB) -> RGB:
    """Convert a display color to linear RGB floats.

    Args:
        value: Hex string or an (r, g, b) tuple of 0-1 sRGB floats

    Returns:
        Linear (r, g, b) in 0-1
    """
    if isinstance(value, str):
        rgb = tuple(c / 255.0 for c in parse_hex(value))
    else:
        rgb = tuple(float(c) for c in value)
    r, g, b = (srgb_channel_to_linear(c) for c in rgb)
    return (r, g, b)


def encode_srgb(linear: NDArray[np.float64]) -> NDArray[np.float64]:
    """Vectorized linear -> sRGB transfer for a float image in 0-1."""
    linear = np.clip(linear, 0.0, 1.0)
    low = linear * 12.92
    high = 1.055 * np.power(linear, 0.41666) - 0.055
    return np.where(linear < 0.0031308, low, high)


def to_uint8(image: NDArray[np.float64]) -> NDArray[np.uint8]:
    """Quantize a 0-1 float image to 8-bit."""
    return (np.clip(image, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
