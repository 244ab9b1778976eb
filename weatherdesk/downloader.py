"""Concurrent HTTP fetching with bounded retry and placeholder fallback."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import requests
from requests.adapters import HTTPAdapter

from .config import DesktopConfig
from .errors import HTTPStatusError, TransportError, WeatherDeskError, is_retryable
from .images import detect_image_format, write_placeholder_image
from .models import SourceKind, SourceSpec

logger = logging.getLogger("weatherdesk")

USER_AGENT = "weatherdesk/0.1 (+desktop wallpaper compositor)"


@dataclass
class FetchResult:
    """Outcome of fetching one source, including the fallback path."""

    spec: SourceSpec
    ok: bool
    attempts: int
    error: Optional[WeatherDeskError] = None
    fallback: bool = False


@dataclass
class FetchReport:
    """Aggregated, non-fatal outcome of a ``fetch_all`` call."""

    results: List[FetchResult] = field(default_factory=list)

    @property
    def failed(self) -> List[FetchResult]:
        return [result for result in self.results if not result.ok]

    @property
    def errors(self) -> List[WeatherDeskError]:
        return [result.error for result in self.results if result.error is not None]

    def summary(self) -> str:
        total = len(self.results)
        failed = self.failed
        if not failed:
            return f"{total}/{total} sources fetched"
        names = ", ".join(result.spec.name for result in failed)
        return f"{total - len(failed)}/{total} sources fetched, fell back for: {names}"


def build_session(max_workers: int = 8) -> requests.Session:
    """Create a session whose connection pool fits the worker count."""
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    adapter = HTTPAdapter(pool_connections=max_workers, pool_maxsize=max_workers)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def fetch_bytes(session: requests.Session, url: str, timeout: float) -> bytes:
    """Perform a single GET, mapping failures onto the fetch error types."""
    try:
        resp = session.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise TransportError(url, str(exc)) from exc
    if not 200 <= resp.status_code < 300:
        raise HTTPStatusError(url, resp.status_code)
    return resp.content


def _write_payload(spec: SourceSpec, data: bytes) -> None:
    path = Path(spec.local_path)
    if detect_image_format(data) is None:
        logger.warning("%s returned a payload that is not a recognised image", spec.name)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def fetch_source(
    session: requests.Session,
    spec: SourceSpec,
    config: DesktopConfig,
    sleeper: Callable[[float], None] = time.sleep,
) -> FetchResult:
    """Fetch one source with retry; always leaves a file at ``local_path``."""
    last_error: Optional[WeatherDeskError] = None
    attempts = 0
    for attempt in range(1, config.max_attempts + 1):
        attempts = attempt
        if attempt > 1:
            sleeper(config.retry_delay * (attempt - 1))
            logger.info("Retry attempt %d for %s", attempt, spec.origin)
        try:
            data = fetch_bytes(session, spec.origin, config.request_timeout)
        except WeatherDeskError as exc:
            last_error = exc
            logger.debug("Attempt %d for %s failed: %s", attempt, spec.name, exc)
            if not is_retryable(exc):
                break
            continue
        try:
            _write_payload(spec, data)
        except OSError as exc:
            last_error = WeatherDeskError(f"{spec.local_path}: {exc}")
            break
        logger.info("Downloaded %s to %s", spec.name, spec.local_path)
        return FetchResult(spec=spec, ok=True, attempts=attempts)

    logger.warning(
        "Failed to download %s after %d attempt(s): %s; creating fallback image",
        spec.name,
        attempts,
        last_error,
    )
    try:
        write_placeholder_image(spec.local_path)
    except OSError as exc:
        logger.error("Failed to create fallback for %s: %s", spec.name, exc)
        return FetchResult(spec=spec, ok=False, attempts=attempts, error=last_error)
    return FetchResult(
        spec=spec, ok=False, attempts=attempts, error=last_error, fallback=True
    )


def fetch_all(
    specs: Iterable[SourceSpec],
    config: DesktopConfig,
    session: Optional[requests.Session] = None,
    sleeper: Callable[[float], None] = time.sleep,
) -> FetchReport:
    """Fetch every download source concurrently and wait for all of them.

    Failures never propagate: each failed source gets a placeholder and an
    entry in the returned report.
    """
    downloads = [spec for spec in specs if spec.kind is SourceKind.DOWNLOAD]
    report = FetchReport()
    if not downloads:
        return report

    owns_session = session is None
    session = session or build_session(config.max_workers)
    # Workers only call get; the adapter pool is sized to max_workers.
    try:
        with ThreadPoolExecutor(max_workers=max(1, config.max_workers)) as executor:
            futures = {
                executor.submit(fetch_source, session, spec, config, sleeper): spec
                for spec in downloads
            }
            for future in as_completed(futures):
                spec = futures[future]
                try:
                    report.results.append(future.result())
                except Exception as exc:  # pylint: disable=broad-except
                    logger.exception("Unexpected error fetching %s", spec.name)
                    try:
                        write_placeholder_image(spec.local_path)
                    except OSError:
                        logger.error("Failed to create fallback for %s", spec.name)
                    report.results.append(
                        FetchResult(
                            spec=spec,
                            ok=False,
                            attempts=0,
                            error=WeatherDeskError(str(exc)),
                            fallback=Path(spec.local_path).exists(),
                        )
                    )
    finally:
        if owns_session:
            session.close()

    order = {spec.local_path: index for index, spec in enumerate(downloads)}
    report.results.sort(key=lambda result: order[result.spec.local_path])
    return report
