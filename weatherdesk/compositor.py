"""Layered compositing of processed images into the final wallpaper."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

from PIL import Image

from .config import DEFAULT_COMPOSITE_PREFIX, DEFAULT_JPEG_QUALITY
from .errors import CompositeError, DecodeError
from .images import load_image
from .models import CompositeLayer
from .utils import timestamp

logger = logging.getLogger("weatherdesk")

COMPOSITE_EXTENSION = ".jpg"


def composite_filename(prefix: str = DEFAULT_COMPOSITE_PREFIX, now: Optional[dt.datetime] = None) -> str:
    """Return ``prefix-YYMMDD-HHMM.jpg`` for ``now``."""
    return f"{prefix}-{timestamp(now)}{COMPOSITE_EXTENSION}"


def unique_output_path(output_dir: Path, filename: str) -> Path:
    """Avoid clobbering a composite written earlier in the same minute."""
    candidate = Path(output_dir) / filename
    stem = candidate.stem
    counter = 1
    while candidate.exists():
        candidate = candidate.with_name(f"{stem}-{counter}{candidate.suffix}")
        counter += 1
    return candidate


def find_latest_composite(output_dir: Path, prefix: str = DEFAULT_COMPOSITE_PREFIX) -> Optional[Path]:
    """Return the most recently modified composite in ``output_dir``."""
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return None
    candidates = [
        path
        for path in output_dir.glob(f"{prefix}-*{COMPOSITE_EXTENSION}")
        if path.is_file()
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda path: path.stat().st_mtime)


def paint_layer(canvas: Image.Image, layer: CompositeLayer) -> bool:
    """Alpha-blend one layer onto ``canvas``; returns False when skipped."""
    path = Path(layer.image_path)
    if not path.exists():
        logger.warning("Skipping layer %s: image file not found", path)
        return False
    try:
        image = load_image(path).convert("RGBA")
    except DecodeError as exc:
        logger.warning("Skipping layer %s: %s", path, exc)
        return False

    x, y = layer.position
    # Clip to the canvas; alpha_composite rejects sources that overhang it.
    left, top = max(0, -x), max(0, -y)
    right = min(image.width, canvas.width - x)
    bottom = min(image.height, canvas.height - y)
    if right <= left or bottom <= top:
        logger.warning("Skipping layer %s: entirely outside the canvas", path)
        return False
    if (left, top, right, bottom) != (0, 0, image.width, image.height):
        image = image.crop((left, top, right, bottom))
    canvas.alpha_composite(image, dest=(x + left, y + top))
    logger.debug("Composited %s at position (%d, %d)", path, x, y)
    return True


def render_canvas(
    layers: Iterable[CompositeLayer],
    canvas_size: Tuple[int, int],
    background_color: Tuple[int, int, int],
) -> Image.Image:
    """Paint ``layers`` in order onto a solid background and return the canvas."""
    try:
        canvas = Image.new("RGBA", tuple(canvas_size), tuple(background_color) + (255,))
    except (ValueError, MemoryError) as exc:
        raise CompositeError(f"cannot allocate {canvas_size} canvas: {exc}") from exc
    painted = 0
    for layer in layers:
        if paint_layer(canvas, layer):
            painted += 1
    logger.info("Painted %d layer(s) onto %dx%d canvas", painted, canvas.width, canvas.height)
    return canvas


def composite(
    layers: Iterable[CompositeLayer],
    canvas_size: Tuple[int, int],
    background_color: Tuple[int, int, int],
    output_dir: Path,
    prefix: str = DEFAULT_COMPOSITE_PREFIX,
    quality: int = DEFAULT_JPEG_QUALITY,
    now: Optional[dt.datetime] = None,
) -> Path:
    """Render the composite and write it under a fresh timestamped name.

    Previously written composites are never touched. Missing or undecodable
    layers are skipped; only allocation or the final write can fail.
    """
    canvas = render_canvas(layers, canvas_size, background_color)
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = unique_output_path(output_dir, composite_filename(prefix, now))
        canvas.convert("RGB").save(output_path, format="JPEG", quality=quality)
    except OSError as exc:
        raise CompositeError(f"failed to save composite: {exc}") from exc
    logger.info("Composite image saved to %s", output_path)
    return output_path
