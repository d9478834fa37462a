"""Headless container that keeps presented frames in memory."""

import logging

import numpy as np
from numpy.typing import NDArray

from .base import Container

logger = logging.getLogger(__name__)


class OffscreenContainer(Container):
    """
    Container backed by a numpy buffer.

    Used by the frame export script and by tests; ``resize`` stands in for a
    window manager changing the client area.
    """

    def __init__(self, width: int = 800, height: int = 600, pixel_ratio: float = 1.0) -> None:
        self._width = width
        self._height = height
        self._pixel_ratio = pixel_ratio
        self._buffer = np.zeros((height, width, 3), dtype=np.uint8)
        self.frames_presented = 0

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def pixel_ratio(self) -> float:
        return self._pixel_ratio

    def resize(self, width: int, height: int, pixel_ratio: float | None = None) -> None:
        self._width = width
        self._height = height
        if pixel_ratio is not None:
            self._pixel_ratio = pixel_ratio
        logger.debug(f"Offscreen container resized to {width}x{height}")

    def present(self, buffer: NDArray[np.uint8]) -> None:
        if buffer.shape != self._buffer.shape:
            self._buffer = np.empty_like(buffer)
        np.copyto(self._buffer, buffer)
        self.frames_presented += 1

    def get_buffer(self) -> NDArray[np.uint8]:
        """Get copy of the last presented frame."""
        return self._buffer.copy()
