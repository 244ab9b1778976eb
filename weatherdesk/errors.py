"""Exception hierarchy for the wallpaper pipeline.

Errors are grouped by failure kind so callers can pick a policy per kind:
network failures are retried, decode and bounds failures drop a single layer,
and only compositor failures are fatal to a run.
"""

from __future__ import annotations

from typing import Optional, Tuple


class WeatherDeskError(RuntimeError):
    """Base class for every error raised by this package."""


class ManifestError(WeatherDeskError):
    """Raised when the static manifest violates one of its invariants."""


class FetchError(WeatherDeskError):
    """Network-level failure while fetching a source."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


class TransportError(FetchError):
    """Connection, TLS or timeout failure before a response was received."""


class HTTPStatusError(FetchError):
    """The upstream answered with a non-2xx status code."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"unexpected status code {status_code}")
        self.status_code = status_code


class DecodeError(WeatherDeskError):
    """Image bytes on disk could not be opened or decoded."""


class CropOutOfBounds(WeatherDeskError):
    """A crop rectangle does not fit inside the decoded image."""

    def __init__(
        self,
        rect: Tuple[int, int, int, int],
        image_size: Tuple[int, int],
        path: Optional[str] = None,
    ) -> None:
        x, y, width, height = rect
        message = (
            f"crop {width}x{height}+{x}+{y} exceeds image bounds "
            f"{image_size[0]}x{image_size[1]}"
        )
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.rect = rect
        self.image_size = image_size


class CompositeError(WeatherDeskError):
    """The composite canvas could not be allocated or written."""


class ScrapeTargetNotFound(WeatherDeskError):
    """No scrape target matched the requested name filter."""


class LockError(WeatherDeskError):
    """Another pipeline run already holds the run lock."""


def is_retryable(exc: BaseException) -> bool:
    """Return True when a failed fetch attempt should be retried."""
    return isinstance(exc, FetchError)
