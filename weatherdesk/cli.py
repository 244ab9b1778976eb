"""Command-line entry point for the wallpaper pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .config import DesktopConfig
from .desktop import set_wallpaper
from .errors import LockError, WeatherDeskError
from .lockfile import RunLock
from .manifest import build_manifest
from .models import SourceKind
from .pipeline import Stages, run_pipeline

logger = logging.getLogger("weatherdesk.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="weatherdesk",
        description=(
            "Collect weather imagery, render a composite and set it as the desktop. "
            "Without phase options every phase runs."
        ),
    )
    phases = parser.add_argument_group("phase options")
    phases.add_argument("-s", dest="scrape", action="store_true", help="Scrape sites")
    phases.add_argument("-d", dest="download", action="store_true", help="Download images")
    phases.add_argument("-c", dest="transform", action="store_true", help="Crop images")
    phases.add_argument("-r", dest="render", action="store_true", help="Render image")
    phases.add_argument(
        "-p",
        dest="desktop",
        action="store_true",
        help="Set desktop (uses most recent rendered image)",
    )
    phases.add_argument("-f", dest="flush", action="store_true", help="Flush assets")
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=Path("."),
        help="Directory holding assets/, rendered/ and graphics/",
    )
    parser.add_argument(
        "--set-desktop",
        type=Path,
        default=None,
        metavar="PATH",
        help="Set desktop wallpaper from the specified image file and exit",
    )
    parser.add_argument(
        "--scrape-target",
        default=None,
        metavar="NAME",
        help="Only scrape targets whose name contains NAME",
    )
    parser.add_argument(
        "--list-targets",
        action="store_true",
        help="List all available scrape targets and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )
    argv = list(sys.argv[1:] if argv is None else argv)
    return parser.parse_args(argv)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _list_targets(config: DesktopConfig) -> None:
    manifest = build_manifest(config)
    print("Available Scrape Targets:\n")
    scrape_specs = manifest.sources_of(SourceKind.SCRAPE_IMAGE, SourceKind.SCRAPE_HTML)
    for index, spec in enumerate(scrape_specs, start=1):
        print(f"{index}. {spec.name}")
        print(f"   URL: {spec.origin}")
        print(f"   Selector: {spec.selector}")
        print(f"   Default Wait: {spec.wait_ms}ms")
        print(f"   Output: {spec.local_path.name}\n")


def _set_desktop(path: Path) -> int:
    try:
        set_wallpaper(path)
    except WeatherDeskError as exc:
        logger.error("Failed to set desktop: %s", exc)
        return 1
    logger.info("Desktop wallpaper set successfully on all screens")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.debug)

    config = DesktopConfig(base_dir=Path(args.base_dir).resolve(), debug=args.debug)

    if args.list_targets:
        _list_targets(config)
        return 0
    if args.set_desktop is not None:
        return _set_desktop(args.set_desktop)

    stages = Stages.from_flags(
        flush=args.flush,
        scrape=args.scrape,
        download=args.download,
        transform=args.transform,
        render=args.render,
        desktop=args.desktop,
    )

    overall_start = time.perf_counter()
    try:
        with RunLock():
            report = run_pipeline(config, stages, scrape_filter=args.scrape_target)
    except LockError as exc:
        logger.error("%s", exc)
        return 1
    except WeatherDeskError as exc:
        logger.error("Pipeline failed: %s", exc)
        return 1
    total_elapsed = time.perf_counter() - overall_start

    logger.info(
        "Finished in %.2fs (composite: %s)",
        total_elapsed,
        report.output_path or "not rendered",
    )
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
