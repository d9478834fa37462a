"""Critically damped smoothing ("smooth damp") for scalars and 2D vectors.

The step is the classic game-engine formulation: a critically damped spring
whose exponential decay is replaced by the rational approximation

    exp(-x) ~= 1 / (1 + x + 0.48 x^2 + 0.235 x^3),   x = omega * dt

which stays stable for the frame-sized steps the render loop feeds it.

Both forms are pure: they return ``(value, velocity)`` and leave persistence
to the caller. ``DampedValue`` and ``DampedVector`` are small holders for
the render loop that keep (current, target, velocity) together.
"""

from dataclasses import dataclass, field
import math

import numpy as np
from numpy.typing import NDArray

MIN_SMOOTH_TIME = 1e-4


def _decay(omega: float, delta_time: float) -> float:
    x = omega * delta_time
    return 1.0 / (1.0 + x + 0.48 * x * x + 0.235 * x * x * x)


def smooth_damp(
    current: float,
    target: float,
    velocity: float,
    smooth_time: float,
    max_speed: float = math.inf,
    delta_time: float = 1.0 / 60.0,
) -> tuple[float, float]:
    """Advance a scalar toward ``target`` by one damped step.

    Args:
        current: Current value
        target: Value to approach
        velocity: Velocity carried over from the previous step
        smooth_time: Approximate settling time in seconds (floored to 1e-4)
        max_speed: Cap on the change per step, as speed (may be inf)
        delta_time: Elapsed seconds since the previous step

    Returns:
        Tuple of (new value, new velocity). On overshoot the value is exactly
        ``target`` and the velocity exactly 0.0.
    """
    smooth_time = max(MIN_SMOOTH_TIME, smooth_time)
    omega = 2.0 / smooth_time
    decay = _decay(omega, delta_time)

    original_target = target
    change = current - target

    max_change = max_speed * smooth_time
    change = math.copysign(min(abs(change), max_change), change)

    target = current - change
    temp = (velocity + omega * change) * delta_time
    velocity = (velocity - omega * temp) * decay
    value = target + (change + temp) * decay

    # Overshoot: remaining distance and covered distance point the same way
    if (original_target - current) * (value - original_target) > 0:
        return original_target, 0.0
    return value, velocity


def smooth_damp_vec2(
    current: NDArray[np.float64],
    target: NDArray[np.float64],
    velocity: NDArray[np.float64],
    smooth_time: float,
    max_speed: float = math.inf,
    delta_time: float = 1.0 / 60.0,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Vector form of :func:`smooth_damp` for 2D values.

    The speed cap applies to the length of the change, so the direction of
    travel is preserved. Inputs are not modified.
    """
    current = np.asarray(current, dtype=np.float64)
    original_target = np.asarray(target, dtype=np.float64)
    velocity = np.asarray(velocity, dtype=np.float64)

    smooth_time = max(MIN_SMOOTH_TIME, smooth_time)
    omega = 2.0 / smooth_time
    decay = _decay(omega, delta_time)

    change = current - original_target
    max_change = max_speed * smooth_time
    length = float(np.hypot(change[0], change[1]))
    if length > max_change:
        change = change * (max_change / length)

    target = current - change
    temp = (velocity + change * omega) * delta_time
    new_velocity = (velocity - temp * omega) * decay
    value = target + (change + temp) * decay

    if float(np.dot(original_target - current, value - original_target)) > 0:
        return original_target.copy(), np.zeros(2)
    return value, new_velocity


@dataclass
class DampedValue:
    """Scalar motion state: current, target and carried velocity."""

    current: float = 0.0
    target: float = 0.0
    velocity: float = 0.0

    def step(self, smooth_time: float, max_speed: float, delta_time: float) -> float:
        self.current, self.velocity = smooth_damp(
            self.current, self.target, self.velocity,
            smooth_time, max_speed, delta_time,
        )
        return self.current


@dataclass
class DampedVector:
    """2D motion state used for the look vector."""

    current: NDArray[np.float64] = field(default_factory=lambda: np.zeros(2))
    target: NDArray[np.float64] = field(default_factory=lambda: np.zeros(2))
    velocity: NDArray[np.float64] = field(default_factory=lambda: np.zeros(2))

    def step(
        self, smooth_time: float, max_speed: float, delta_time: float
    ) -> NDArray[np.float64]:
        self.current, self.velocity = smooth_damp_vec2(
            self.current, self.target, self.velocity,
            smooth_time, max_speed, delta_time,
        )
        return self.current
