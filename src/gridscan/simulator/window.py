"""
Desktop host window using pygame.

Mounts a GridScanEffect in a resizable window, forwards size changes to it
and draws the frames it presents, with optional debug and log overlays.
"""

import pygame
import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..core.events import Event, EventBus, EventType
from ..hosts.base import Container

if TYPE_CHECKING:
    from ..effect.grid_scan import GridScanEffect

logger = logging.getLogger(__name__)


@dataclass
class WindowConfig:
    """Host window configuration."""
    width: int = 1280
    height: int = 720
    title: str = "Grid Scan"
    fullscreen: bool = False
    fps: int = 60
    pixel_ratio: float = 1.0

    # Colors
    bg_color: tuple[int, int, int] = (0, 0, 0)
    panel_color: tuple[int, int, int] = (20, 25, 35)
    text_color: tuple[int, int, int] = (200, 200, 220)
    accent_color: tuple[int, int, int] = (0, 255, 242)


class SimulatorWindow(Container):
    """
    Pygame window hosting the effect.

    Keyboard Mapping:
        D: Toggle debug overlay
        L: Toggle log viewer
        S: Capture screenshot
        F: Toggle fullscreen
        T: Request a manual scan (accepted and ignored by the effect)
        ESC/Q: Exit
    """

    def __init__(
        self,
        config: WindowConfig | None = None,
        event_bus: EventBus | None = None
    ) -> None:
        self.config = config or WindowConfig()
        self.event_bus = event_bus or EventBus()

        # Pygame setup
        self._screen: pygame.Surface | None = None
        self._clock: pygame.time.Clock | None = None
        self._running = False
        self._frame_count = 0
        self._show_debug = False

        self._effect: "GridScanEffect | None" = None
        self._frame: NDArray[np.uint8] | None = None

        # Fonts
        self._font: pygame.font.Font | None = None
        self._small_font: pygame.font.Font | None = None

        # Log viewer
        self._show_log = False
        self._log_buffer: list[str] = []
        self._max_log_lines = 20
        self._log_handler: logging.Handler | None = None

        # Effect state as published on the bus, shown in the debug overlay
        self._last_tick: dict = {}
        self._render_size: dict = {}
        self._last_scan: dict = {}
        self._scan_resets = 0
        self._unsubscribers = [
            self.event_bus.subscribe(EventType.TICK, self._on_tick),
            self.event_bus.subscribe(EventType.RESIZE, self._on_effect_resize),
            self.event_bus.subscribe(EventType.SCAN_RESET, self._on_scan_reset),
        ]

        self._setup_log_capture()

        logger.info("SimulatorWindow created")

    # Container interface

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def pixel_ratio(self) -> float:
        return self.config.pixel_ratio

    def present(self, buffer: NDArray[np.uint8]) -> None:
        self._frame = buffer

    def close(self) -> None:
        self.stop()

    # Setup

    def _setup_log_capture(self) -> None:
        """Setup log capturing for the log viewer."""
        class WindowLogHandler(logging.Handler):
            def __init__(self, window: 'SimulatorWindow'):
                super().__init__()
                self.window = window

            def emit(self, record):
                msg = self.format(record)
                self.window._log_buffer.append(msg)
                # Keep buffer size limited
                if len(self.window._log_buffer) > self.window._max_log_lines * 2:
                    self.window._log_buffer = self.window._log_buffer[-self.window._max_log_lines:]

        handler = WindowLogHandler(self)
        handler.setFormatter(logging.Formatter('%(levelname).1s %(name)s: %(message)s'))
        logging.getLogger().addHandler(handler)
        self._log_handler = handler

    def _init_pygame(self) -> None:
        """Initialize pygame and create window."""
        pygame.init()
        pygame.display.set_caption(self.config.title)

        self._screen = pygame.display.set_mode(
            (self.config.width, self.config.height),
            self._display_flags()
        )
        self._clock = pygame.time.Clock()

        pygame.font.init()
        self._font = pygame.font.SysFont(None, 20)
        self._small_font = pygame.font.SysFont(None, 16)

        logger.info(f"Pygame initialized: {self.config.width}x{self.config.height}")

    def _display_flags(self) -> int:
        flags = pygame.DOUBLEBUF
        if self.config.fullscreen:
            flags |= pygame.FULLSCREEN
        else:
            flags |= pygame.RESIZABLE
        return flags

    # Events

    def _handle_events(self) -> None:
        """Process pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False
            elif event.type == pygame.VIDEORESIZE:
                self._on_resize(event.w, event.h)
            elif event.type == pygame.WINDOWSIZECHANGED:
                self._on_resize(event.x, event.y)
            elif event.type == pygame.KEYDOWN:
                self._handle_keydown(event)

    def _handle_keydown(self, event: pygame.event.Event) -> None:
        """Handle key press."""
        key = event.key

        if key == pygame.K_ESCAPE or key == pygame.K_q:
            self._running = False
        elif key == pygame.K_d:
            self._show_debug = not self._show_debug
        elif key == pygame.K_l:
            self._show_log = not self._show_log
        elif key == pygame.K_s:
            self._capture_screenshot()
        elif key == pygame.K_f:
            self._toggle_fullscreen()
        elif key == pygame.K_t:
            if self._effect:
                self._effect.trigger_scan()

    def _on_resize(self, width: int, height: int) -> None:
        """Forward a new client size to the effect."""
        if (width, height) == (self.config.width, self.config.height):
            return
        self.config.width = width
        self.config.height = height
        if self._effect:
            self._effect.resize(width, height, self.config.pixel_ratio)
        logger.debug(f"Window resized to {width}x{height}")

    # Bus handlers

    def _on_tick(self, event: Event) -> None:
        self._last_tick = event.data

    def _on_effect_resize(self, event: Event) -> None:
        self._render_size = event.data

    def _on_scan_reset(self, event: Event) -> None:
        self._last_scan = event.data
        self._scan_resets += 1

    # Rendering

    def _render(self) -> None:
        """Draw the latest frame and overlays."""
        if not self._screen:
            return

        self._screen.fill(self.config.bg_color)

        if self._frame is not None:
            surface = pygame.surfarray.make_surface(self._frame.swapaxes(0, 1))
            size = (self.config.width, self.config.height)
            if surface.get_size() != size:
                surface = pygame.transform.smoothscale(surface, size)
            self._screen.blit(surface, (0, 0))

        if self._show_debug:
            self._render_debug_panel()
        if self._show_log:
            self._render_log_panel()

        pygame.display.flip()

    def _render_debug_panel(self) -> None:
        """Render the debug information panel."""
        if not self._small_font:
            return

        rect = pygame.Rect(self.config.width - 250, 10, 240, 200)
        surf = pygame.Surface(rect.size, pygame.SRCALPHA)
        surf.fill((*self.config.panel_color, 210))
        self._screen.blit(surf, rect.topleft)

        y = rect.y + 8
        for line in self._debug_lines():
            text_surface = self._small_font.render(line, True, self.config.text_color)
            self._screen.blit(text_surface, (rect.x + 10, y))
            y += 16

    def _debug_lines(self) -> list[str]:
        """Overlay text, built from the latest bus events."""
        lines = [
            f"FPS: {self._clock.get_fps():.1f}" if self._clock else "FPS: --",
            f"Frame: {self._last_tick.get('frame', 0)}  dt {self._last_tick.get('delta', 0.0) * 1000:.1f} ms",
            f"Size: {self.config.width}x{self.config.height} @{self.config.pixel_ratio}x",
        ]
        if self._render_size:
            r = self._render_size
            lines.append(f"Viewport: {r['width']}x{r['height']} @{r['pixel_ratio']}x")
        if self._effect:
            u = self._effect.uniforms
            lines += [
                f"Time: {u.time:.2f}",
                f"Skew: {u.skew[0]:+.3f} {u.skew[1]:+.3f}",
                f"Tilt/Yaw: {u.tilt:+.3f} {u.yaw:+.3f}",
            ]
        if self._last_scan:
            lines.append(
                f"Scans: {self._scan_resets} (last {self._last_scan['direction']} at {self._last_scan['start']:.1f}s)"
            )
        else:
            lines.append("Scans: waiting")
        lines += ["", "D debug  L log  S shot", "F full  Q quit"]
        return lines

    def _render_log_panel(self) -> None:
        """Render the log viewer panel."""
        if not self._small_font:
            return

        rect = pygame.Rect(10, 10, 420, self.config.height - 20)
        surf = pygame.Surface((rect.width, rect.height), pygame.SRCALPHA)
        surf.fill((20, 25, 35, 230))
        self._screen.blit(surf, rect.topleft)
        pygame.draw.rect(self._screen, (60, 80, 100), rect, 1, border_radius=5)

        y = rect.y + 8
        for line in self._log_buffer[-self._max_log_lines:]:
            # Color code by level
            if line.startswith('E'):
                color = (255, 100, 100)
            elif line.startswith('W'):
                color = (255, 200, 100)
            elif line.startswith('I'):
                color = (150, 200, 150)
            else:
                color = (150, 150, 170)

            display_line = line[:62] + "..." if len(line) > 65 else line
            text_surf = self._small_font.render(display_line, True, color)
            self._screen.blit(text_surf, (rect.x + 8, y))
            y += 14
            if y > rect.bottom - 10:
                break

    def _capture_screenshot(self) -> None:
        """Capture and save a screenshot."""
        if self._screen:
            filename = f"screenshot_{self._frame_count}.png"
            pygame.image.save(self._screen, filename)
            logger.info(f"Screenshot saved: {filename}")

    def _toggle_fullscreen(self) -> None:
        """Toggle fullscreen mode."""
        self.config.fullscreen = not self.config.fullscreen

        if self.config.fullscreen:
            info = pygame.display.Info()
            size = (info.current_w, info.current_h)
        else:
            size = (1280, 720)

        self._screen = pygame.display.set_mode(size, self._display_flags())
        self._on_resize(*size)
        logger.info(f"Fullscreen: {self.config.fullscreen}")

    # Main loop

    async def run(self, effect: "GridScanEffect") -> None:
        """Main window loop: one effect tick per frame."""
        self._init_pygame()
        self._effect = effect
        self._running = True

        # The window may have been resized before the first frame
        effect.resize(self.config.width, self.config.height, self.config.pixel_ratio)
        effect.start()

        logger.info("Window loop started")

        try:
            while self._running:
                self._handle_events()

                effect.tick()

                self._render()

                if self._clock:
                    self._clock.tick(self.config.fps)
                self._frame_count += 1

                # Yield to other tasks
                await asyncio.sleep(0)
        finally:
            effect.stop()
            self._cleanup()

    def _cleanup(self) -> None:
        """Clean up pygame resources."""
        if self._log_handler:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        pygame.quit()
        logger.info("Window closed")

    def stop(self) -> None:
        """Stop the window loop."""
        self._running = False
