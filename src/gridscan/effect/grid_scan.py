"""
Grid scan effect - the per-frame driver.

Owns the motion state, the scan scheduler, the uniform set and the renderer,
and glues them to a host container. Hosts call ``tick`` once per frame and
``resize`` whenever their client area changes.
"""

import asyncio
import logging
import math
import time
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

from gridscan.animation.damping import DampedValue, DampedVector
from gridscan.animation.easing import clamp, lerp
from gridscan.animation.scan import (
    DEFAULT_INITIAL_DELAY,
    DEFAULT_PERIOD,
    ScanBuffer,
    ScanDirection,
    ScanScheduler,
)
from gridscan.core.events import EventBus, resize_event, scan_reset_event, tick_event
from gridscan.graphics.renderer import Renderer, clamp_pixel_ratio
from gridscan.graphics.uniforms import GridScanConfig, UniformSet, build_uniforms
from gridscan.hosts.base import Container

logger = logging.getLogger(__name__)

MAX_FRAME_DELTA = 0.1
LOOK_AMPLITUDE = 0.1
LOOK_ROTATION = 0.2


class GridScanEffect:
    """
    Animated perspective grid with traveling scan pulses.

    Args:
        config: Static look of the effect
        container: Host that provides the size and receives frames
        clock: Time source in seconds (defaults to a monotonic clock
            starting at zero when the effect is created)
        event_bus: Optional bus for tick, resize and scan reset events
        render_scale: Extra scale on the render target
        background: sRGB color the frames are composited onto
        scan_period: Seconds between scheduled scan resets
        scan_initial_delay: Seconds before the first reset
    """

    def __init__(
        self,
        config: GridScanConfig,
        container: Container,
        clock: Optional[Callable[[], float]] = None,
        event_bus: Optional[EventBus] = None,
        render_scale: float = 1.0,
        background: tuple[int, int, int] = (0, 0, 0),
        scan_period: float = DEFAULT_PERIOD,
        scan_initial_delay: float = DEFAULT_INITIAL_DELAY,
    ) -> None:
        self.config = config
        self.container = container
        self.event_bus = event_bus

        if clock is None:
            origin = time.monotonic()
            clock = lambda: time.monotonic() - origin  # noqa: E731
        self._clock = clock

        # Derived motion parameters
        s = float(clamp(config.sensitivity, 0.0, 1.0))
        self.skew_scale = lerp(0.06, 0.2, s)
        self.y_boost = lerp(1.2, 1.6, s)
        self.smooth_time = lerp(0.45, 0.12, s)
        self.max_speed = math.inf

        # Motion state
        self.look = DampedVector()
        self.tilt = DampedValue()
        self.yaw = DampedValue()

        pixel_ratio = clamp_pixel_ratio(container.pixel_ratio)
        self.uniforms: UniformSet = build_uniforms(
            config, (container.width, container.height, pixel_ratio)
        )
        self.renderer = Renderer.for_config(
            config,
            container.width,
            container.height,
            pixel_ratio=pixel_ratio,
            render_scale=render_scale,
            background=background,
        )

        self.scan_buffer = ScanBuffer()
        self.scan_buffer.direction = ScanDirection.from_name(config.scan_direction)
        self.scheduler = ScanScheduler(
            self.scan_buffer,
            period=scan_period,
            initial_delay=scan_initial_delay,
            on_reset=self._on_scan_reset,
        )

        self._last_time: Optional[float] = None
        self._frame = 0
        self._running = False

        logger.info(
            f"GridScanEffect created: {container.width}x{container.height} "
            f"@{pixel_ratio}x, sensitivity={s:.2f}"
        )

    @property
    def frame_count(self) -> int:
        return self._frame

    @property
    def running(self) -> bool:
        return self._running

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Arm the scan scheduler on the event loop."""
        self.scheduler.start(self._clock, loop)
        self._running = True

    def stop(self) -> None:
        """Cancel the scan timer and stop the frame loop."""
        self.scheduler.stop()
        self._running = False

    def trigger_scan(self, direction: Optional[str] = None) -> None:
        """Accepted for API compatibility; manual scans are not supported."""
        logger.debug(f"trigger_scan({direction}) ignored")

    def update(self, now: float) -> float:
        """
        Advance motion and push every per-frame uniform.

        Returns:
            The clamped frame delta in seconds
        """
        if self._last_time is None:
            dt = 0.0
        else:
            dt = float(clamp(now - self._last_time, 0.0, MAX_FRAME_DELTA))
        self._last_time = now

        self.look.target = np.array([
            math.sin(now * 0.2) * LOOK_AMPLITUDE,
            math.cos(now * 0.15) * LOOK_AMPLITUDE,
        ])
        look = self.look.step(self.smooth_time, self.max_speed, dt)
        tilt = self.tilt.step(self.smooth_time, self.max_speed, dt)
        yaw = self.yaw.step(self.smooth_time, self.max_speed, dt)

        u = self.uniforms
        u.skew = (
            float(look[0] * self.skew_scale),
            float(-look[1] * self.y_boost * self.skew_scale),
        )
        u.tilt = tilt + float(look[1]) * LOOK_ROTATION
        u.yaw = yaw + float(look[0]) * LOOK_ROTATION
        u.time = now
        u.sync_scans(self.scan_buffer)
        return dt

    def tick(self, now: Optional[float] = None) -> NDArray[np.uint8]:
        """
        Run one frame: update uniforms, render and present.

        Args:
            now: Frame time in seconds (defaults to the effect clock)

        Returns:
            The rendered 8-bit frame
        """
        if now is None:
            now = self._clock()

        dt = self.update(now)
        buffer = self.renderer.render(self.uniforms, dt)
        self.container.present(buffer)
        self._frame += 1

        if self.event_bus:
            self.event_bus.emit(tick_event(dt, self._frame))
        return buffer

    def resize(
        self,
        width: int,
        height: int,
        pixel_ratio: Optional[float] = None,
    ) -> None:
        """
        Follow a change of the host's client size.

        The render target and post-processing buffers are resized right away
        and the resolution uniform is updated; nothing is deferred.
        """
        if pixel_ratio is None:
            pixel_ratio = self.container.pixel_ratio
        ratio = clamp_pixel_ratio(pixel_ratio)

        self.renderer.set_size(width, height, ratio)
        self.uniforms.set_resolution(width, height, ratio)

        if self.event_bus:
            self.event_bus.emit(resize_event(width, height, ratio, source="effect"))

    async def run(self, fps: int = 60, frames: Optional[int] = None) -> None:
        """
        Drive the effect from an asyncio loop.

        Args:
            fps: Target frame rate
            frames: Stop after this many frames (runs until ``stop`` if None)
        """
        self.start()
        interval = 1.0 / max(1, fps)
        logger.info(f"Effect loop running at {fps} fps")
        try:
            while self._running:
                started = time.perf_counter()
                self.tick()
                if frames is not None and self._frame >= frames:
                    break
                elapsed = time.perf_counter() - started
                await asyncio.sleep(max(0.0, interval - elapsed))
        finally:
            self.stop()
            logger.info(f"Effect loop stopped after {self._frame} frames")

    def _on_scan_reset(self, start: float, direction: ScanDirection) -> None:
        if self.event_bus:
            self.event_bus.emit(scan_reset_event(start, direction.name.lower()))
