"""Image decoding, crop/resize transforms and placeholder utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from filetype import guess
from PIL import Image, UnidentifiedImageError

from .config import DEFAULT_JPEG_QUALITY
from .errors import CropOutOfBounds, DecodeError, WeatherDeskError
from .models import AbsoluteSize, CropRect, NoResize, PercentageScale, Resize, TransformSpec

logger = logging.getLogger("weatherdesk")

PLACEHOLDER_SIZE = (1, 1)


@dataclass
class TransformResult:
    """Outcome of a single transform."""

    spec: TransformSpec
    ok: bool
    output_size: Optional[Tuple[int, int]] = None
    error: Optional[WeatherDeskError] = None


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def write_placeholder_image(path: Path, size: Tuple[int, int] = PLACEHOLDER_SIZE) -> Path:
    """Write a fully transparent PNG so downstream stages always find a file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, (0, 0, 0, 0)).save(path, format="PNG")
    logger.debug("Wrote %dx%d transparent placeholder to %s", size[0], size[1], path)
    return path


def load_image(path: Path) -> Image.Image:
    """Open and fully decode an image, normalising palette modes."""
    try:
        with Image.open(path) as raw_image:
            raw_image.load()
            if raw_image.mode in ("RGB", "RGBA"):
                return raw_image.copy()
            has_alpha = raw_image.mode in ("LA", "PA") or (
                raw_image.mode == "P" and "transparency" in raw_image.info
            )
            return raw_image.convert("RGBA" if has_alpha else "RGB")
    except FileNotFoundError as exc:
        raise DecodeError(f"{path}: file not found") from exc
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"{path}: {exc}") from exc


def crop_image(image: Image.Image, rect: CropRect, path: Optional[Path] = None) -> Image.Image:
    """Crop to ``rect``; an out-of-bounds rectangle is an error, never clamped."""
    if rect.is_identity:
        return image
    if not rect.fits_within(image.size):
        raise CropOutOfBounds(
            (rect.x, rect.y, rect.width, rect.height),
            image.size,
            str(path) if path else None,
        )
    return image.crop(rect.box)


def target_size(size: Tuple[int, int], resize: Resize) -> Tuple[int, int]:
    """Compute the output dimensions for ``resize`` applied to ``size``."""
    width, height = size
    if isinstance(resize, NoResize):
        return size
    if isinstance(resize, AbsoluteSize):
        if resize.width <= 0 and resize.height <= 0:
            return size
        if resize.height <= 0:
            return resize.width, max(1, round(height * resize.width / width))
        if resize.width <= 0:
            return max(1, round(width * resize.height / height)), resize.height
        return resize.width, resize.height
    if isinstance(resize, PercentageScale):
        scale = resize.percent / 100.0
        return max(1, round(width * scale)), max(1, round(height * scale))
    raise TypeError(f"Unsupported resize recipe: {resize!r}")


def resize_image(image: Image.Image, resize: Resize) -> Image.Image:
    new_size = target_size(image.size, resize)
    if new_size == image.size:
        return image
    return image.resize(new_size, Image.Resampling.LANCZOS)


def save_jpeg(image: Image.Image, path: Path, quality: int = DEFAULT_JPEG_QUALITY) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.convert("RGB").save(path, format="JPEG", quality=quality)


def transform(spec: TransformSpec, quality: int = DEFAULT_JPEG_QUALITY) -> Tuple[int, int]:
    """Crop and resize ``spec.input_path`` into ``spec.output_path``.

    Returns the output dimensions. On failure nothing is left at the output
    path, so the compositor treats the layer as missing.
    """
    output_path = Path(spec.output_path)
    try:
        image = load_image(spec.input_path)
        image = crop_image(image, spec.crop, spec.input_path)
        image = resize_image(image, spec.resize)
    except WeatherDeskError:
        output_path.unlink(missing_ok=True)
        raise
    save_jpeg(image, output_path, quality)
    return image.size


def transform_all(
    specs: Iterable[TransformSpec],
    quality: int = DEFAULT_JPEG_QUALITY,
) -> List[TransformResult]:
    """Run every transform, logging and recording failures instead of raising."""
    results: List[TransformResult] = []
    for spec in specs:
        logger.info("Processing %s", spec.name)
        try:
            size = transform(spec, quality)
        except (CropOutOfBounds, DecodeError) as exc:
            logger.warning("Failed to process %s: %s", spec.name, exc)
            results.append(TransformResult(spec=spec, ok=False, error=exc))
            continue
        except OSError as exc:
            logger.warning("Failed to write %s: %s", spec.output_path, exc)
            Path(spec.output_path).unlink(missing_ok=True)
            results.append(
                TransformResult(
                    spec=spec,
                    ok=False,
                    error=WeatherDeskError(f"{spec.output_path}: {exc}"),
                )
            )
            continue
        logger.info(
            "Saved processed image to %s (%dx%d)", spec.output_path, size[0], size[1]
        )
        results.append(TransformResult(spec=spec, ok=True, output_size=size))
    return results
