"""High-level orchestration of fetch, transform, classify and composite."""

from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import requests

from .compositor import composite, find_latest_composite
from .config import DesktopConfig
from .desktop import flush_assets, set_wallpaper
from .downloader import FetchReport, fetch_all
from .errors import CompositeError, ScrapeTargetNotFound, WeatherDeskError
from .images import TransformResult, transform_all
from .manifest import Manifest, build_manifest
from .models import ClosureStatus, OverlayGraphic, SourceKind, SourceSpec
from .scraper import ScrapeResult, scrape_all
from .status import apply_overlay, classify_file, select_overlay

logger = logging.getLogger("weatherdesk")

Scraper = Callable[[Sequence[SourceSpec], DesktopConfig], List[ScrapeResult]]
WallpaperSetter = Callable[[Path], None]


@dataclass(frozen=True)
class Stages:
    """Which stages a run performs; ``explicit`` marks user-selected stages."""

    flush: bool = False
    scrape: bool = False
    download: bool = False
    transform: bool = False
    render: bool = False
    desktop: bool = False
    explicit: bool = False

    @classmethod
    def all(cls) -> "Stages":
        return cls(True, True, True, True, True, True, explicit=False)

    @classmethod
    def from_flags(
        cls,
        flush: bool = False,
        scrape: bool = False,
        download: bool = False,
        transform: bool = False,
        render: bool = False,
        desktop: bool = False,
    ) -> "Stages":
        """No flags at all means a full run."""
        if not any((flush, scrape, download, transform, render, desktop)):
            return cls.all()
        return cls(flush, scrape, download, transform, render, desktop, explicit=True)


@dataclass
class RunReport:
    """Everything a run produced, for logging and exit status."""

    stages: Stages
    fetch: Optional[FetchReport] = None
    scrapes: List[ScrapeResult] = field(default_factory=list)
    transforms: List[TransformResult] = field(default_factory=list)
    status: Optional[ClosureStatus] = None
    overlay: Optional[OverlayGraphic] = None
    output_path: Optional[Path] = None
    wallpaper_path: Optional[Path] = None
    total_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        """True unless rendering was requested and no composite was written."""
        return not self.stages.render or self.output_path is not None


def _scrape_targets(manifest: Manifest, scrape_filter: Optional[str]) -> Sequence[SourceSpec]:
    if not scrape_filter:
        return manifest.sources_of(SourceKind.SCRAPE_IMAGE, SourceKind.SCRAPE_HTML)
    matched = manifest.find_sources(scrape_filter)
    if not matched:
        raise ScrapeTargetNotFound(f"no targets match filter: {scrape_filter}")
    logger.info(
        "Found %d target(s) matching %r: %s",
        len(matched),
        scrape_filter,
        ", ".join(spec.name for spec in matched),
    )
    return matched


def render_stage(
    config: DesktopConfig,
    manifest: Manifest,
    report: RunReport,
    now: Optional[dt.datetime] = None,
) -> None:
    """Classify the pass status, place the overlay, then paint the composite."""
    status = classify_file(manifest.status_html_path)
    overlay = select_overlay(status)
    report.status = status
    report.overlay = overlay
    if status.known:
        logger.info(
            "Pass Status - East: %s (closed: %s), West: %s (closed: %s)",
            status.east_label,
            status.is_east_closed,
            status.west_label,
            status.is_west_closed,
        )
    else:
        logger.info("Pass status unknown")
    apply_overlay(overlay, config.graphics_dir, manifest.status_slot_path)

    try:
        report.output_path = composite(
            manifest.layers,
            config.canvas_size,
            config.background_color,
            config.rendered_dir,
            prefix=config.composite_prefix,
            quality=config.jpeg_quality,
            now=now,
        )
    except CompositeError as exc:
        logger.error("Composite failed: %s", exc)


def desktop_stage(
    config: DesktopConfig,
    report: RunReport,
    wallpaper_setter: WallpaperSetter,
) -> None:
    if config.debug and not report.stages.explicit:
        logger.warning("Skipping desktop wallpaper setting (debug mode active)")
        return
    latest = find_latest_composite(config.rendered_dir, config.composite_prefix)
    if latest is None:
        logger.error("No rendered composite found in %s", config.rendered_dir)
        return
    try:
        wallpaper_setter(latest)
    except WeatherDeskError as exc:
        logger.error("Failed to set desktop: %s", exc)
        return
    report.wallpaper_path = latest


def run_pipeline(
    config: DesktopConfig,
    stages: Optional[Stages] = None,
    manifest: Optional[Manifest] = None,
    *,
    session: Optional[requests.Session] = None,
    scraper: Scraper = scrape_all,
    wallpaper_setter: WallpaperSetter = set_wallpaper,
    sleeper: Callable[[float], None] = time.sleep,
    scrape_filter: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> RunReport:
    """Run the selected stages in order; only a failed composite is reported as failure."""
    stages = stages or Stages.all()
    manifest = manifest or build_manifest(config)
    report = RunReport(stages=stages)
    overall_start = time.perf_counter()
    config.ensure_directories()

    if stages.flush:
        flush_assets(config.assets_dir)

    if stages.scrape:
        logger.info("Scraping sites...")
        targets = _scrape_targets(manifest, scrape_filter)
        report.scrapes = scraper(targets, config)
        failures = sum(1 for result in report.scrapes if not result.ok)
        if failures:
            logger.warning("%d scrape target(s) fell back to placeholders", failures)

    if stages.download:
        logger.info("Downloading images...")
        report.fetch = fetch_all(
            manifest.sources_of(SourceKind.DOWNLOAD),
            config,
            session=session,
            sleeper=sleeper,
        )
        for error in report.fetch.errors:
            logger.warning("Download error: %s", error)
        logger.info("Downloads completed: %s", report.fetch.summary())

    if stages.transform:
        logger.info("Cropping images...")
        report.transforms = transform_all(manifest.transforms, config.jpeg_quality)

    if stages.render:
        logger.info("Rendering...")
        render_stage(config, manifest, report, now=now)

    if stages.desktop:
        desktop_stage(config, report, wallpaper_setter)

    report.total_seconds = time.perf_counter() - overall_start
    return report
