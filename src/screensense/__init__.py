"""ScreenSense: screen context sampling for assistant agents."""

__version__ = "0.1.0"
