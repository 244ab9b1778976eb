"""Desktop background installation and ephemeral asset housekeeping."""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path

from .errors import WeatherDeskError

logger = logging.getLogger("weatherdesk")

_APPLESCRIPT = (
    'tell application "System Events" to tell every desktop '
    "to set picture to POSIX file {path}"
)


def _applescript_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def set_wallpaper(image_path: Path) -> None:
    """Install ``image_path`` as the background on every screen (macOS)."""
    path = Path(image_path).expanduser().resolve()
    if not path.is_file():
        raise WeatherDeskError(f"image file not found: {path}")
    if sys.platform != "darwin":
        raise WeatherDeskError(f"setting the desktop is not supported on {sys.platform}")

    script = _APPLESCRIPT.format(path=_applescript_string(str(path)))
    logger.info("Setting desktop wallpaper on all screens: %s", path)
    try:
        subprocess.run(
            ["osascript", "-e", script],
            check=True,
            capture_output=True,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        detail = getattr(exc, "stderr", None) or exc
        raise WeatherDeskError(f"failed to set wallpaper: {detail}") from exc


def flush_assets(assets_dir: Path) -> int:
    """Remove every file in the ephemeral assets directory; returns the count."""
    assets_dir = Path(assets_dir)
    if not assets_dir.is_dir():
        return 0
    removed = 0
    for path in sorted(assets_dir.iterdir()):
        if not path.is_file():
            continue
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Failed to remove %s: %s", path, exc)
            continue
        logger.debug("Removed %s", path)
        removed += 1
    logger.info("Flushed %d asset file(s) from %s", removed, assets_dir)
    return removed
