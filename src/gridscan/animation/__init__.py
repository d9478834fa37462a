"""Animation module for gridscan: easing, damped motion and scan pulses."""

from gridscan.animation.easing import clamp, lerp, smoothstep, smootherstep, smoother01
from gridscan.animation.damping import (
    smooth_damp,
    smooth_damp_vec2,
    DampedValue,
    DampedVector,
)
from gridscan.animation.scan import (
    MAX_SCANS,
    SCAN_SENTINEL,
    ScanBuffer,
    ScanDirection,
    ScanScheduler,
    apply_direction,
    scan_phase,
)

__all__ = [
    # Easing
    "clamp",
    "lerp",
    "smoothstep",
    "smootherstep",
    "smoother01",
    # Damping
    "smooth_damp",
    "smooth_damp_vec2",
    "DampedValue",
    "DampedVector",
    # Scan pulses
    "MAX_SCANS",
    "SCAN_SENTINEL",
    "ScanBuffer",
    "ScanDirection",
    "ScanScheduler",
    "apply_direction",
    "scan_phase",
]
