"""Host containers the effect can be mounted into."""

from .base import Container
from .offscreen import OffscreenContainer

__all__ = ["Container", "OffscreenContainer"]
