"""Scan pulse buffer, its cycling scheduler and pulse phase mapping.

The buffer mirrors the fixed-size uniform array consumed by the fragment
program: eight start times, an active count and a direction flag. Inactive
slots hold a sentinel far in the past so that any pulse read from them is
already past its window and fully faded.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional
import asyncio
import logging

import numpy as np
from numpy.typing import NDArray

from gridscan.animation.easing import clamp

logger = logging.getLogger(__name__)

MAX_SCANS = 8
SCAN_SENTINEL = -1000.0

DEFAULT_PERIOD = 5.0
DEFAULT_INITIAL_DELAY = 0.1


class ScanDirection(IntEnum):
    """Phase mapping modes, valued as the shader's direction uniform."""

    FORWARD = 0
    BACKWARD = 1
    PINGPONG = 2

    @classmethod
    def from_name(cls, name: str) -> "ScanDirection":
        key = name.strip().lower().replace("-", "").replace("_", "")
        aliases = {
            "forward": cls.FORWARD,
            "backward": cls.BACKWARD,
            "pingpong": cls.PINGPONG,
        }
        if key not in aliases:
            raise ValueError(f"Unknown scan direction: {name}")
        return aliases[key]


def scan_phase(t_active, duration: float):
    """Normalized pulse progress, clamped to [0, 1].

    A start time in the future (negative ``t_active``) yields 0 and anything
    past the window yields 1; the phase is never extrapolated.
    """
    duration = max(0.05, duration)
    return clamp(t_active / duration, 0.0, 1.0)


def apply_direction(phase, direction: int):
    """Map a phase through the direction mode.

    Forward is the identity, backward reflects (1 - phase) and ping-pong
    folds the first half forward and the second half back.
    """
    if direction == ScanDirection.BACKWARD:
        return 1.0 - phase
    if direction == ScanDirection.PINGPONG:
        if isinstance(phase, np.ndarray):
            return np.where(phase < 0.5, phase * 2.0, 1.0 - (phase - 0.5) * 2.0)
        return phase * 2.0 if phase < 0.5 else 1.0 - (phase - 0.5) * 2.0
    return phase


@dataclass
class ScanBuffer:
    """Fixed-capacity pulse start times plus active count and direction."""

    capacity: int = MAX_SCANS
    starts: NDArray[np.float64] = field(init=False)
    count: int = MAX_SCANS
    direction: ScanDirection = ScanDirection.PINGPONG

    def __post_init__(self) -> None:
        self.starts = np.full(self.capacity, SCAN_SENTINEL, dtype=np.float64)
        self.count = min(self.count, self.capacity)

    def clear(self) -> None:
        """Invalidate every slot."""
        self.starts.fill(SCAN_SENTINEL)


class ScanScheduler:
    """Rewrites the scan buffer on a fixed period, alternating direction.

    Each trigger clears the buffer, starts a single pulse in slot 0 and flips
    the direction between forward and backward. The first trigger runs after
    ``initial_delay`` and later ones every ``period`` seconds after it.
    Ping-pong is only ever the configured starting mode; the cycle never
    selects it.
    """

    def __init__(
        self,
        buffer: ScanBuffer,
        period: float = DEFAULT_PERIOD,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        on_reset: Optional[Callable[[float, ScanDirection], None]] = None,
    ) -> None:
        self.buffer = buffer
        self.period = period
        self.initial_delay = initial_delay
        self.on_reset = on_reset

        # Next direction to apply; the first cycle runs forward
        self._next_direction = ScanDirection.FORWARD
        self._cycles = 0
        self._next_due = initial_delay

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._clock: Optional[Callable[[], float]] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def cycles(self) -> int:
        """Number of resets performed so far."""
        return self._cycles

    @property
    def running(self) -> bool:
        return self._handle is not None

    def trigger(self, now: float) -> ScanDirection:
        """Reset the buffer to a single pulse starting at ``now``.

        Returns:
            The direction applied to this pulse
        """
        buffer = self.buffer
        buffer.clear()
        buffer.starts[0] = now
        buffer.count = 1

        direction = self._next_direction
        buffer.direction = direction
        self._next_direction = (
            ScanDirection.BACKWARD
            if direction == ScanDirection.FORWARD
            else ScanDirection.FORWARD
        )
        self._cycles += 1

        logger.debug(f"Scan reset #{self._cycles} at t={now:.3f} ({direction.name})")

        if self.on_reset:
            try:
                self.on_reset(now, direction)
            except Exception as e:
                logger.error(f"Error in scan reset callback: {e}")

        return direction

    def advance(self, now: float) -> int:
        """Fire every reset due by ``now`` without an event loop.

        Follows the same schedule as the timer (first at ``initial_delay``,
        then every ``period``), for headless rendering on a simulated clock.

        Returns:
            Number of resets fired
        """
        fired = 0
        while now >= self._next_due:
            self.trigger(self._next_due)
            self._next_due += self.period
            fired += 1
        return fired

    def start(
        self,
        clock: Callable[[], float],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """Arm the timer on an asyncio loop.

        Args:
            clock: Returns the effect's simulated time in seconds
            loop: Event loop to schedule on (defaults to the running loop)
        """
        if self._handle is not None:
            return
        self._loop = loop or asyncio.get_running_loop()
        self._clock = clock
        self._handle = self._loop.call_later(self.initial_delay, self._on_timer)
        logger.info(
            f"Scan scheduler started (delay={self.initial_delay}s, period={self.period}s)"
        )

    def stop(self) -> None:
        """Cancel the pending timer, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.info("Scan scheduler stopped")

    def _on_timer(self) -> None:
        if self._loop is None or self._clock is None:
            return
        # Re-arm first so a slow reset does not drift the period
        self._handle = self._loop.call_later(self.period, self._on_timer)
        self.trigger(self._clock())
