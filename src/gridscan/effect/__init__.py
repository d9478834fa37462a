"""The grid scan effect driver."""

from gridscan.effect.grid_scan import GridScanEffect

__all__ = ["GridScanEffect"]
