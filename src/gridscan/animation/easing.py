"""Easing and interpolation helpers shared by the scheduler and the shader.

Every function accepts plain floats or numpy arrays, so the same curve can
drive a single pulse envelope or a whole frame of pixels.
"""

from typing import TypeVar

import numpy as np
from numpy.typing import NDArray

Scalar = TypeVar("Scalar", float, NDArray[np.float64])


def clamp(value: Scalar, low: float = 0.0, high: float = 1.0) -> Scalar:
    """Clamp a value (or array) to [low, high]."""
    if isinstance(value, np.ndarray):
        return np.clip(value, low, high)
    return max(low, min(high, value))


def lerp(start: float, end: float, t: float) -> float:
    """Linear interpolation without clamping t."""
    return start + (end - start) * t


def smoothstep(edge0, edge1, x):
    """Hermite smoothstep, matching the GLSL built-in.

    Edges may be arrays. Where the two edges coincide the ramp collapses to
    a hard step at edge0 rather than producing NaN.
    """
    edge0 = np.asarray(edge0, dtype=np.float64)
    edge1 = np.asarray(edge1, dtype=np.float64)
    x = np.asarray(x, dtype=np.float64)
    span = edge1 - edge0
    with np.errstate(divide="ignore", invalid="ignore"):
        t = (x - edge0) / span
    t = np.where(span == 0.0, (x >= edge0).astype(np.float64), t)
    t = np.clip(t, 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def smootherstep(t: Scalar) -> Scalar:
    """Quintic smootherstep of an already normalized t."""
    t = clamp(t, 0.0, 1.0)
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def smoother01(a: float, b: float, x: Scalar) -> Scalar:
    """Quintic ramp from 0 at ``a`` to 1 at ``b``.

    The span is floored at 1e-5 so a zero-width taper degrades to a step
    instead of dividing by zero.
    """
    t = clamp((x - a) / max(1e-5, b - a), 0.0, 1.0)
    return smootherstep(t)


def fract(x: NDArray[np.float64]) -> NDArray[np.float64]:
    """GLSL fract(): x - floor(x)."""
    return x - np.floor(x)
