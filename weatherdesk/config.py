"""Configuration objects and constants for the wallpaper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

DEFAULT_CANVAS_SIZE = (3840, 2160)
DEFAULT_BACKGROUND_COLOR = (135, 206, 235)
DEFAULT_JPEG_QUALITY = 90
DEFAULT_COMPOSITE_PREFIX = "hud"
DEFAULT_MAX_ATTEMPTS = 3


@dataclass
class DesktopConfig:
    """Top-level settings that control fetching, processing and rendering."""

    base_dir: Path
    request_timeout: float = 10.0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = 1.0
    max_workers: int = 8
    canvas_size: Tuple[int, int] = DEFAULT_CANVAS_SIZE
    background_color: Tuple[int, int, int] = DEFAULT_BACKGROUND_COLOR
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    composite_prefix: str = DEFAULT_COMPOSITE_PREFIX
    navigation_timeout: float = 10.0
    screenshot_timeout: float = 10.0
    debug: bool = False
    assets_dir: Path = field(init=False)
    rendered_dir: Path = field(init=False)
    graphics_dir: Path = field(init=False)

    def __post_init__(self) -> None:
        self.base_dir = Path(self.base_dir)
        self.assets_dir = self.base_dir / "assets"
        self.rendered_dir = self.base_dir / "rendered"
        self.graphics_dir = self.base_dir / "graphics"

    def ensure_directories(self) -> None:
        """Create the ephemeral and append-only output directories."""
        self.assets_dir.mkdir(parents=True, exist_ok=True)
        self.rendered_dir.mkdir(parents=True, exist_ok=True)
