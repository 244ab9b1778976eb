"""Data models used throughout the wallpaper pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union


class SourceKind(str, Enum):
    """How the raw bytes for a source are obtained."""

    DOWNLOAD = "download"
    SCRAPE_IMAGE = "scrape-image"
    SCRAPE_HTML = "scrape-html"


@dataclass(frozen=True)
class SourceSpec:
    """One fetchable or scrapeable source in the manifest."""

    name: str
    origin: str
    local_path: Path
    kind: SourceKind = SourceKind.DOWNLOAD
    selector: Optional[str] = None
    wait_ms: int = 1000


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle in source pixel coordinates."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def identity(cls) -> "CropRect":
        return cls()

    @property
    def is_identity(self) -> bool:
        return self.width == 0 and self.height == 0

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """Pillow-style (left, upper, right, lower) box."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def fits_within(self, size: Tuple[int, int]) -> bool:
        width, height = size
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.x + self.width <= width
            and self.y + self.height <= height
        )


@dataclass(frozen=True)
class NoResize:
    """Leave the image dimensions untouched."""


@dataclass(frozen=True)
class AbsoluteSize:
    """Resize to a fixed pixel size; a zero dimension keeps the aspect ratio."""

    width: int
    height: int = 0


@dataclass(frozen=True)
class PercentageScale:
    """Scale both axes by ``percent / 100``."""

    percent: int


Resize = Union[NoResize, AbsoluteSize, PercentageScale]


@dataclass(frozen=True)
class TransformSpec:
    """Crop and resize recipe turning a raw artifact into a processed one."""

    name: str
    input_path: Path
    output_path: Path
    crop: CropRect = CropRect()
    resize: Resize = NoResize()


@dataclass(frozen=True)
class CompositeLayer:
    """Image painted onto the output canvas with its top-left at ``position``."""

    image_path: Path
    position: Tuple[int, int] = (0, 0)


@dataclass(frozen=True)
class ClosureStatus:
    """Classified open/closed state of both travel directions."""

    east_label: str = ""
    west_label: str = ""
    is_east_closed: bool = False
    is_west_closed: bool = False
    conditions_text: str = ""
    known: bool = True

    @classmethod
    def unknown(cls) -> "ClosureStatus":
        return cls(known=False)

    @property
    def is_closed(self) -> bool:
        return self.is_east_closed or self.is_west_closed


class OverlayGraphic(str, Enum):
    """Pre-rendered status overlays, keyed by closure combination."""

    BOTH_CLOSED = "bothClosed"
    EAST_ONLY_CLOSED = "eastOnlyClosed"
    WEST_ONLY_CLOSED = "westOnlyClosed"
    NONE = "none"
