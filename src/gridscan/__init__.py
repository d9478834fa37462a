"""gridscan: animated grid scan effect and live question relay."""

__version__ = "0.1.0"
