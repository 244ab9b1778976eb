"""Playwright-backed capture of page elements as images or HTML."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from playwright.async_api import (
    Browser,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import DesktopConfig
from .images import write_placeholder_image
from .models import SourceKind, SourceSpec
from .utils import timestamp

logger = logging.getLogger("weatherdesk")

PLACEHOLDER_HTML = "<div></div>"


@dataclass
class ScrapeResult:
    """Outcome of capturing one scrape source."""

    spec: SourceSpec
    ok: bool
    error: Optional[str] = None
    debug_path: Optional[Path] = None


def write_placeholder(spec: SourceSpec) -> None:
    """Write the empty artifact matching the source kind."""
    path = Path(spec.local_path)
    if spec.kind is SourceKind.SCRAPE_HTML:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(PLACEHOLDER_HTML, encoding="utf-8")
    else:
        write_placeholder_image(path)


def debug_copy_path(path: Path) -> Path:
    path = Path(path)
    return path.with_name(f"{path.stem}-DEBUG-{timestamp(fmt='%Y%m%d-%H%M')}{path.suffix}")


async def capture_source(browser: Browser, spec: SourceSpec, config: DesktopConfig) -> Optional[Path]:
    """Navigate to ``spec.origin`` and save the selected element to disk.

    Returns the extra debug copy path when one was written.
    """
    page = await browser.new_page()
    try:
        start = time.perf_counter()
        await page.goto(
            spec.origin,
            wait_until="domcontentloaded",
            timeout=config.navigation_timeout * 1000,
        )
        logger.debug("Navigation to %s complete (%.2fs)", spec.origin, time.perf_counter() - start)

        locator = page.locator(spec.selector).first
        try:
            await locator.wait_for(state="visible", timeout=spec.wait_ms or 1000)
        except PlaywrightTimeoutError:
            logger.debug(
                "Element %s not visible after %dms, capturing anyway",
                spec.selector,
                spec.wait_ms,
            )

        path = Path(spec.local_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if spec.kind is SourceKind.SCRAPE_HTML:
            html = await locator.inner_html(timeout=config.screenshot_timeout * 1000)
            path.write_text(html, encoding="utf-8")
            logger.info("Saved HTML to %s", path)
            return None

        screenshot = await locator.screenshot(timeout=config.screenshot_timeout * 1000)
        path.write_bytes(screenshot)
        logger.info("Saved screenshot to %s (%d bytes)", path, len(screenshot))
        if config.debug:
            debug_path = debug_copy_path(path)
            debug_path.write_bytes(screenshot)
            return debug_path
        return None
    finally:
        await page.close()


async def scrape_sources(specs: Iterable[SourceSpec], config: DesktopConfig) -> List[ScrapeResult]:
    """Capture every scrape source sequentially in one headless WebKit browser."""
    targets = [
        spec
        for spec in specs
        if spec.kind in (SourceKind.SCRAPE_IMAGE, SourceKind.SCRAPE_HTML)
    ]
    results: List[ScrapeResult] = []
    if not targets:
        return results

    async with async_playwright() as playwright:
        browser = await playwright.webkit.launch(headless=True)
        try:
            for spec in targets:
                logger.info("Scraping %s", spec.name)
                try:
                    debug_path = await capture_source(browser, spec, config)
                except Exception as exc:  # pylint: disable=broad-except
                    logger.error("Failed to scrape %s: %s", spec.name, exc)
                    write_placeholder(spec)
                    results.append(ScrapeResult(spec=spec, ok=False, error=str(exc)))
                    continue
                results.append(ScrapeResult(spec=spec, ok=True, debug_path=debug_path))
        finally:
            await browser.close()
    return results


def scrape_all(specs: Iterable[SourceSpec], config: DesktopConfig) -> List[ScrapeResult]:
    """Synchronous entry point used by the pipeline.

    If the browser itself cannot be started, every target still receives its
    placeholder artifact.
    """
    specs = list(specs)
    try:
        return asyncio.run(scrape_sources(specs, config))
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Browser automation failed; writing placeholders")
        results = []
        for spec in specs:
            if spec.kind is SourceKind.DOWNLOAD:
                continue
            write_placeholder(spec)
            results.append(ScrapeResult(spec=spec, ok=False, error=str(exc)))
        return results
