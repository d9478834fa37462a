"""
Abstract base class for host containers.

A container is whatever the effect is mounted into: it reports its client
size and device pixel ratio and receives finished frames. Both the pygame
window and the offscreen buffer follow this contract.
"""

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray


class Container(ABC):
    """Abstract base class for frame hosts."""

    @property
    @abstractmethod
    def width(self) -> int:
        """Client width in CSS pixels."""
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        """Client height in CSS pixels."""
        ...

    @property
    def pixel_ratio(self) -> float:
        """Device pixel ratio of the host surface."""
        return 1.0

    @abstractmethod
    def present(self, buffer: NDArray[np.uint8]) -> None:
        """
        Show a finished frame.

        Args:
            buffer: numpy array of shape (h, w, 3) with 8-bit sRGB values,
                sized to client size times pixel ratio
        """
        ...

    def close(self) -> None:
        """Release host resources."""
        pass
