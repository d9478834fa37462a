"""Frame renderer for the grid scan effect.

Owns the render target (an 8-bit RGB buffer sized to client size times
pixel ratio) and the post-processing composer, and turns a uniform set into
a finished frame.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

import numpy as np
from numpy.typing import NDArray

from gridscan.graphics.color import encode_srgb, to_uint8
from gridscan.graphics.postprocess import (
    BloomPass,
    ChromaticAberrationPass,
    EffectComposer,
)
from gridscan.graphics.shader import FragmentOutput, shade
from gridscan.graphics.uniforms import GridScanConfig, UniformSet

logger = logging.getLogger(__name__)

MAX_PIXEL_RATIO = 2.0


@dataclass
class RenderTarget:
    """Color buffer the frames are rendered into."""

    width: int
    height: int
    buffer: NDArray[np.uint8] = field(init=False)

    def __post_init__(self):
        self.buffer = np.zeros((self.height, self.width, 3), dtype=np.uint8)

    def resize(self, width: int, height: int) -> None:
        if (width, height) == (self.width, self.height):
            return
        self.width = width
        self.height = height
        self.buffer = np.zeros((height, width, 3), dtype=np.uint8)


def clamp_pixel_ratio(ratio: Optional[float]) -> float:
    """Device pixel ratio as the renderer uses it: at least 1, at most 2."""
    return min(max(float(ratio or 1.0), 1.0), MAX_PIXEL_RATIO)


class Renderer:
    """Shades frames and runs them through the post-processing chain.

    Args:
        width: Client width in CSS pixels
        height: Client height in CSS pixels
        pixel_ratio: Device pixel ratio (capped at 2)
        render_scale: Extra scale on the internal target, for cheap previews
        background: sRGB 0-255 color the transparent frame is composited onto
    """

    def __init__(
        self,
        width: int,
        height: int,
        pixel_ratio: float = 1.0,
        render_scale: float = 1.0,
        background: tuple[int, int, int] = (0, 0, 0),
    ) -> None:
        self.client_width = width
        self.client_height = height
        self.pixel_ratio = clamp_pixel_ratio(pixel_ratio)
        self.render_scale = render_scale
        self.background = np.asarray(background, dtype=np.float64) / 255.0

        self.composer = EffectComposer()
        self.target = RenderTarget(*self._target_size(width, height))
        self.last_frame: Optional[FragmentOutput] = None
        self.frames_rendered = 0

    @classmethod
    def for_config(
        cls,
        config: GridScanConfig,
        width: int,
        height: int,
        pixel_ratio: float = 1.0,
        render_scale: float = 1.0,
        background: tuple[int, int, int] = (0, 0, 0),
    ) -> "Renderer":
        """Build a renderer with the bloom and aberration passes for a config."""
        renderer = cls(width, height, pixel_ratio, render_scale, background)
        renderer.composer.add_pass(
            BloomPass(
                threshold=config.bloom_threshold,
                smoothing=config.bloom_smoothing,
                intensity=1.0,
                opacity=config.bloom_intensity,
            )
        )
        renderer.composer.add_pass(
            ChromaticAberrationPass(
                offset=(config.chromatic_aberration, config.chromatic_aberration),
                radial_modulation=True,
            )
        )
        renderer.composer.set_size(renderer.target.width, renderer.target.height)
        return renderer

    def _target_size(self, width: int, height: int) -> tuple[int, int]:
        scale = self.pixel_ratio * self.render_scale
        return max(1, int(round(width * scale))), max(1, int(round(height * scale)))

    @property
    def buffer(self) -> NDArray[np.uint8]:
        """Most recently rendered frame."""
        return self.target.buffer

    def set_size(self, width: int, height: int, pixel_ratio: Optional[float] = None) -> None:
        """Resize the render target and the composer buffers.

        A new ``pixel_ratio`` is capped at 2; None keeps the current one.
        """
        if pixel_ratio is not None:
            self.pixel_ratio = clamp_pixel_ratio(pixel_ratio)
        self.client_width = width
        self.client_height = height
        target_w, target_h = self._target_size(width, height)
        self.target.resize(target_w, target_h)
        self.composer.set_size(target_w, target_h)
        logger.info(f"Render target resized: {width}x{height} -> {target_w}x{target_h}")

    def render(self, uniforms: UniformSet, dt: float = 0.0) -> NDArray[np.uint8]:
        """Shade, post-process and encode one frame.

        The linear frame is encoded to sRGB first and then alpha-blended over
        the sRGB background, the way a canvas is composited onto its page.

        Returns:
            The target buffer, (height, width, 3) uint8 sRGB
        """
        frame = shade(uniforms, self.target.width, self.target.height)
        frame = self.composer.render(frame, dt)
        self.last_frame = frame

        rgb = encode_srgb(frame.rgb)
        alpha = frame.alpha[..., None]
        composited = rgb * alpha + self.background * (1.0 - alpha)
        np.copyto(self.target.buffer, to_uint8(composited))

        self.frames_rendered += 1
        return self.target.buffer
