"""Effect configuration and the uniform set pushed to the fragment program."""

from dataclasses import dataclass, field, replace
from enum import IntEnum
import logging

import numpy as np
from numpy.typing import NDArray

from gridscan.animation.scan import MAX_SCANS, SCAN_SENTINEL, ScanBuffer, ScanDirection
from gridscan.graphics.color import RGB, srgb_to_linear

logger = logging.getLogger(__name__)


class LineStyle(IntEnum):
    """Grid line masking modes, valued as the shader's style uniform."""

    SOLID = 0
    DASHED = 1
    DOTTED = 2

    @classmethod
    def from_name(cls, name: str) -> "LineStyle":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown line style: {name}") from None


@dataclass(frozen=True)
class GridScanConfig:
    """Static look of the effect. Set once at construction, never mutated."""

    sensitivity: float = 0.55
    line_thickness: float = 1.2
    lines_color: str = "#392e4e"
    scan_color: str = "#00fff2"
    scan_opacity: float = 0.5
    grid_scale: float = 0.1
    line_style: str = "solid"
    line_jitter: float = 0.15
    scan_direction: str = "pingpong"
    bloom_intensity: float = 1.5
    bloom_threshold: float = 0.1
    bloom_smoothing: float = 0.5
    chromatic_aberration: float = 0.005
    noise_intensity: float = 0.05
    scan_glow: float = 1.5
    scan_softness: float = 1.0
    phase_taper: float = 0.9
    scan_duration: float = 4.0
    scan_delay: float = 0.0

    def with_overrides(self, **changes) -> "GridScanConfig":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)


@dataclass
class UniformSet:
    """Per-frame inputs of the fragment program.

    Field names follow the program's parameters rather than the config, so
    that motion and scan state can be pushed alongside the static values.
    """

    resolution: tuple[float, float, float] = (1.0, 1.0, 1.0)
    time: float = 0.0
    skew: tuple[float, float] = (0.0, 0.0)
    tilt: float = 0.0
    yaw: float = 0.0
    line_thickness: float = 1.2
    lines_color: RGB = (0.0, 0.0, 0.0)
    scan_color: RGB = (0.0, 0.0, 0.0)
    grid_scale: float = 0.1
    line_style: int = LineStyle.SOLID
    line_jitter: float = 0.0
    scan_opacity: float = 0.5
    scan_direction: int = ScanDirection.PINGPONG
    noise: float = 0.0
    bloom_opacity: float = 1.0
    scan_glow: float = 1.0
    scan_softness: float = 1.0
    phase_taper: float = 0.9
    scan_duration: float = 4.0
    scan_delay: float = 0.0
    scan_starts: NDArray[np.float64] = field(
        default_factory=lambda: np.full(MAX_SCANS, SCAN_SENTINEL, dtype=np.float64)
    )
    scan_count: int = MAX_SCANS

    def set_resolution(self, width: float, height: float, pixel_ratio: float) -> None:
        self.resolution = (float(width), float(height), float(pixel_ratio))

    def sync_scans(self, buffer: ScanBuffer) -> None:
        """Mirror the scan buffer into the uniform arrays."""
        np.copyto(self.scan_starts, buffer.starts[:MAX_SCANS])
        self.scan_count = buffer.count
        self.scan_direction = int(buffer.direction)


def build_uniforms(
    config: GridScanConfig,
    resolution: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> UniformSet:
    """Translate a configuration into its initial uniform values.

    Colors are linearized and the enumerations become their integer codes.
    Numeric ranges are left as configured; the fragment program clamps them
    again where its math needs it.
    """
    uniforms = UniformSet(
        resolution=tuple(float(v) for v in resolution),
        line_thickness=config.line_thickness,
        lines_color=srgb_to_linear(config.lines_color),
        scan_color=srgb_to_linear(config.scan_color),
        grid_scale=config.grid_scale,
        line_style=int(LineStyle.from_name(config.line_style)),
        line_jitter=config.line_jitter,
        scan_opacity=config.scan_opacity,
        scan_direction=int(ScanDirection.from_name(config.scan_direction)),
        noise=config.noise_intensity,
        bloom_opacity=config.bloom_intensity,
        scan_glow=config.scan_glow,
        scan_softness=config.scan_softness,
        phase_taper=config.phase_taper,
        scan_duration=config.scan_duration,
        scan_delay=config.scan_delay,
    )
    logger.debug(
        f"Uniforms built: style={LineStyle(uniforms.line_style).name}, "
        f"direction={ScanDirection(uniforms.scan_direction).name}"
    )
    return uniforms
