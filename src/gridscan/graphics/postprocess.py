"""Post-processing chain: bloom and chromatic aberration on float frames.

Passes operate on linear-light RGB plus alpha and keep whatever per-size
buffers they need; the composer forwards resizes so those buffers always
match the render target.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol
import logging

import numpy as np
from numpy.typing import NDArray

from gridscan.animation.easing import smoothstep
from gridscan.graphics.shader import FragmentOutput

logger = logging.getLogger(__name__)

FloatArray = NDArray[np.float64]

# Rec. 709 luma weights
LUMA = np.array([0.2126, 0.7152, 0.0722])


class Pass(Protocol):
    """A post-processing step over a float frame."""

    def set_size(self, width: int, height: int) -> None:
        ...

    def apply(self, frame: FragmentOutput, dt: float) -> FragmentOutput:
        ...


def _blur121(image: FloatArray) -> FloatArray:
    """Separable [1, 2, 1] / 4 blur with edge clamping."""
    padded = np.pad(image, ((1, 1), (0, 0), (0, 0)), mode="edge")
    image = (padded[:-2] + 2.0 * padded[1:-1] + padded[2:]) * 0.25
    padded = np.pad(image, ((0, 0), (1, 1), (0, 0)), mode="edge")
    return (padded[:, :-2] + 2.0 * padded[:, 1:-1] + padded[:, 2:]) * 0.25


def _downsample(image: FloatArray) -> FloatArray:
    """Halve resolution by 2x2 averaging (odd edges are replicated)."""
    h, w = image.shape[:2]
    if h % 2:
        image = np.concatenate([image, image[-1:]], axis=0)
    if w % 2:
        image = np.concatenate([image, image[:, -1:]], axis=1)
    return 0.25 * (
        image[0::2, 0::2] + image[1::2, 0::2] + image[0::2, 1::2] + image[1::2, 1::2]
    )


def _upsample(image: FloatArray, height: int, width: int) -> FloatArray:
    up = np.repeat(np.repeat(image, 2, axis=0), 2, axis=1)
    return up[:height, :width]


def mip_blur(image: FloatArray, levels: int = 5) -> FloatArray:
    """Wide soft blur from a blurred mip chain, averaged back to full size."""
    h, w = image.shape[:2]
    chain = [_blur121(image)]
    current = image
    for _ in range(levels - 1):
        if min(current.shape[:2]) < 2:
            break
        current = _blur121(_downsample(current))
        chain.append(current)

    # Collapse from the smallest level upward
    result = chain[-1]
    for level in reversed(chain[:-1]):
        lh, lw = level.shape[:2]
        result = 0.5 * (_upsample(result, lh, lw) + level)
    return result[:h, :w]


@dataclass
class BloomPass:
    """Luminance-thresholded glow added back onto the frame.

    Attributes:
        threshold: Luminance where the glow starts
        smoothing: Width of the threshold ramp
        intensity: Glow strength
        opacity: Blend opacity of the glow layer
        levels: Depth of the mip chain
    """

    threshold: float = 0.1
    smoothing: float = 0.5
    intensity: float = 1.0
    opacity: float = 1.5
    levels: int = 5
    _size: tuple[int, int] = field(default=(0, 0), repr=False)

    def set_size(self, width: int, height: int) -> None:
        self._size = (width, height)

    def apply(self, frame: FragmentOutput, dt: float) -> FragmentOutput:
        rgb, alpha = frame
        # Glow sources are the visible (alpha-weighted) parts of the frame
        source = rgb * alpha[..., None]
        luminance = source @ LUMA
        mask = smoothstep(self.threshold, self.threshold + self.smoothing, luminance)
        glow = mip_blur(source * mask[..., None], self.levels) * self.intensity * self.opacity

        out_rgb = np.clip(rgb * alpha[..., None] + glow, 0.0, None)
        glow_alpha = np.clip(glow @ LUMA, 0.0, 1.0)
        out_alpha = np.maximum(alpha, glow_alpha)
        # Back to straight alpha
        with np.errstate(divide="ignore", invalid="ignore"):
            straight = np.where(out_alpha[..., None] > 0.0, out_rgb / out_alpha[..., None], 0.0)
        return FragmentOutput(np.clip(straight, 0.0, 1.0), out_alpha)


@dataclass
class ChromaticAberrationPass:
    """Radially modulated RGB split.

    Red samples outward and blue inward by ``offset`` (in UV units), scaled
    by distance from the center beyond ``modulation_offset``.
    """

    offset: tuple[float, float] = (0.005, 0.005)
    radial_modulation: bool = True
    modulation_offset: float = 0.15
    _index: Optional[tuple[NDArray[np.intp], ...]] = field(default=None, repr=False)

    def set_size(self, width: int, height: int) -> None:
        self._index = self._build_index(width, height)

    def _build_index(self, width: int, height: int) -> tuple[NDArray[np.intp], ...]:
        u = (np.arange(width) + 0.5) / width
        v = (np.arange(height) + 0.5) / height
        uu, vv = np.meshgrid(u, v)
        if self.radial_modulation:
            d = np.hypot(uu - 0.5, vv - 0.5) * 2.0
            d = np.maximum(d - self.modulation_offset, 0.0)
        else:
            d = np.ones_like(uu)
        off_u = self.offset[0] * d
        off_v = self.offset[1] * d

        def sample(du: FloatArray, dv: FloatArray) -> tuple[NDArray[np.intp], NDArray[np.intp]]:
            cols = np.clip(((uu + du) * width).astype(np.intp), 0, width - 1)
            rows = np.clip(((vv + dv) * height).astype(np.intp), 0, height - 1)
            return rows, cols

        red_rows, red_cols = sample(off_u, off_v)
        blue_rows, blue_cols = sample(-off_u, -off_v)
        return red_rows, red_cols, blue_rows, blue_cols

    def apply(self, frame: FragmentOutput, dt: float) -> FragmentOutput:
        rgb, alpha = frame
        h, w = alpha.shape
        if self._index is None or self._index[0].shape != (h, w):
            self._index = self._build_index(w, h)
        red_rows, red_cols, blue_rows, blue_cols = self._index

        out = rgb.copy()
        out[..., 0] = rgb[red_rows, red_cols, 0]
        out[..., 2] = rgb[blue_rows, blue_cols, 2]
        out_alpha = np.maximum.reduce(
            [alpha, alpha[red_rows, red_cols], alpha[blue_rows, blue_cols]]
        )
        return FragmentOutput(out, out_alpha)


class EffectComposer:
    """Runs passes in order over a shaded frame."""

    def __init__(self, passes: Optional[list[Pass]] = None) -> None:
        self.passes: list[Pass] = list(passes or [])
        self._size = (0, 0)

    @property
    def size(self) -> tuple[int, int]:
        return self._size

    def add_pass(self, render_pass: Pass) -> None:
        self.passes.append(render_pass)
        if self._size != (0, 0):
            render_pass.set_size(*self._size)

    def set_size(self, width: int, height: int) -> None:
        self._size = (width, height)
        for render_pass in self.passes:
            render_pass.set_size(width, height)
        logger.debug(f"Composer resized to {width}x{height}")

    def render(self, frame: FragmentOutput, dt: float = 0.0) -> FragmentOutput:
        for render_pass in self.passes:
            frame = render_pass.apply(frame, dt)
        return frame
