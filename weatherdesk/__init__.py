"""Weather wallpaper compositor."""

__version__ = "0.1.0"
