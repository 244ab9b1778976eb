"""Static manifest of every source, transform and composite layer."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from .config import DesktopConfig
from .errors import ManifestError
from .models import (
    AbsoluteSize,
    CompositeLayer,
    CropRect,
    NoResize,
    PercentageScale,
    SourceKind,
    SourceSpec,
    TransformSpec,
)

STATUS_SLOT_FILENAME = "pass_conditions.png"
STATUS_HTML_FILENAME = "wsdot_stevens_pass.html"


@dataclass(frozen=True)
class Manifest:
    """Immutable description of a pipeline run, built once at startup."""

    sources: Tuple[SourceSpec, ...]
    transforms: Tuple[TransformSpec, ...]
    layers: Tuple[CompositeLayer, ...]
    status_html_path: Path
    status_slot_path: Path

    def validate(self) -> "Manifest":
        """Raise ``ManifestError`` if two entries would overwrite each other."""
        duplicates = _duplicates(spec.local_path for spec in self.sources)
        if duplicates:
            raise ManifestError(
                "local_path shared by multiple sources: "
                + ", ".join(str(path) for path in duplicates)
            )
        duplicates = _duplicates(spec.output_path for spec in self.transforms)
        if duplicates:
            raise ManifestError(
                "output_path shared by multiple transforms: "
                + ", ".join(str(path) for path in duplicates)
            )
        for spec in self.sources:
            if spec.kind is not SourceKind.DOWNLOAD and not spec.selector:
                raise ManifestError(f"scrape source {spec.name!r} has no selector")
        return self

    def sources_of(self, *kinds: SourceKind) -> Tuple[SourceSpec, ...]:
        return tuple(spec for spec in self.sources if spec.kind in kinds)

    def find_sources(self, name_filter: str) -> Tuple[SourceSpec, ...]:
        """Return scrape sources whose name contains ``name_filter`` (any case)."""
        needle = name_filter.lower()
        return tuple(
            spec
            for spec in self.sources_of(SourceKind.SCRAPE_IMAGE, SourceKind.SCRAPE_HTML)
            if needle in spec.name.lower()
        )


def _duplicates(paths) -> list:
    counts = Counter(Path(path) for path in paths)
    return sorted(path for path, count in counts.items() if count > 1)


def _download(assets: Path, name: str, url: str, filename: str) -> SourceSpec:
    return SourceSpec(name=name, origin=url, local_path=assets / filename)


def _scrape(
    assets: Path,
    name: str,
    url: str,
    selector: str,
    filename: str,
    wait_ms: int = 1000,
    kind: SourceKind = SourceKind.SCRAPE_IMAGE,
) -> SourceSpec:
    return SourceSpec(
        name=name,
        origin=url,
        local_path=assets / filename,
        kind=kind,
        selector=selector,
        wait_ms=wait_ms,
    )


def build_manifest(config: DesktopConfig) -> Manifest:
    """Build the fixed Stevens Pass manifest rooted at ``config.assets_dir``."""
    a = config.assets_dir
    sources = (
        _download(
            a,
            "GOES18 North Pacific",
            "https://cdn.star.nesdis.noaa.gov/GOES18/ABI/SECTOR/np/GEOCOLOR/latest.jpg",
            "GOES18_north_pacific.jpg",
        ),
        _download(a, "WSDOT Stevens Pass", "https://images.wsdot.wa.gov/nc/002vc06430.jpg", "wsdot_stevens_pass.jpg"),
        _download(a, "WSDOT US2 Skykomish", "https://images.wsdot.wa.gov/nw/002vc04558.jpg", "wsdot_us2_skykomish.jpg"),
        _download(a, "WSDOT E Stevens Summit", "https://images.wsdot.wa.gov/nc/002vc06458.jpg", "wsdot_e_stevens_summit.jpg"),
        _download(a, "WSDOT Big Windy", "https://images.wsdot.wa.gov/nc/002vc06300.jpg", "wsdot_big_windy.jpg"),
        _download(a, "WSDOT W Stevens", "https://images.wsdot.wa.gov/nc/002vc06190.jpg", "wsdot_w_stevens.jpg"),
        _download(
            a,
            "Stevens Pass Courtyard",
            "https://streamer8.brownrice.com/cam-images/stevenspasscourtyard.jpg",
            "stevenspasscourtyard.jpg",
        ),
        _download(
            a,
            "Stevens Pass Snow Stake",
            "https://streamer8.brownrice.com/cam-images/stevenspasssnowstake.jpg",
            "stevenspasssnowstake.jpg",
        ),
        _download(
            a,
            "Stevens Pass Jupiter",
            "https://streamer8.brownrice.com/cam-images/stevenspassjupiter.jpg",
            "stevenspassjupiter.jpg",
        ),
        _scrape(
            a,
            "Weather.gov Hourly Forecast",
            "https://forecast.weather.gov/MapClick.php?lat=47.7456&lon=-121.0892&unit=0&lg=english&FcstType=graphical",
            'img[src*="meteograms/Plotter.php"]',
            "weather_gov_hourly_forecast.png",
            wait_ms=5000,
        ),
        _scrape(
            a,
            "Weather.gov Extended Forecast",
            "https://forecast.weather.gov/MapClick.php?lat=47.7456&lon=-121.0892",
            "#seven-day-forecast",
            "weather_gov_extended_forecast.png",
        ),
        _scrape(
            a,
            "NWAC Stevens Observations",
            "https://nwac.us/data-portal/graph/21/",
            "#post-146 > div",
            "nwac_stevens_observations.png",
            wait_ms=5000,
        ),
        _scrape(
            a,
            "NWAC Avalanche Forecast",
            "https://nwac.us/avalanche-forecast/#/stevens-pass",
            "#nac-tab-resizer > div > div:nth-child(1) > div > div.nac-danger.nac-mb-4"
            " > div.nac-row > div.nac-dangerToday.nac-col-lg-8.nac-mb-3 > div.nac-dangerGraphic",
            "nwac_stevens_avalanche_forcast.png",
        ),
        _scrape(
            a,
            "NWAC Avalanche Forecast Map",
            "https://nwac.us",
            "#danger-map-widget",
            "nwac_avalanche_forcast.png",
        ),
        _scrape(
            a,
            "WSDOT Stevens Pass Status",
            "https://wsdot.com/travel/real-time/mountainpasses/stevens",
            "#index > div:nth-child(7) > div.full-width.column-container.mountain-pass > div.column-1",
            STATUS_HTML_FILENAME,
            kind=SourceKind.SCRAPE_HTML,
        ),
    )

    transforms = (
        TransformSpec(
            "Background Satellite",
            a / "GOES18_north_pacific.jpg",
            a / "background_s.jpg",
            CropRect(0, 0, 7200, 4050),
            AbsoluteSize(3840, 0),
        ),
        TransformSpec(
            "NWAC Avalanche Forecast Map",
            a / "nwac_avalanche_forcast.png",
            a / "nwac_avalanche_forcast_s.jpg",
            CropRect(65, 110, 400, 520),
        ),
        TransformSpec(
            "NWAC Stevens Avalanche Forecast",
            a / "nwac_stevens_avalanche_forcast.png",
            a / "nwac_stevens_avalanche_forcast_s.jpg",
            CropRect(0, 25, 1086, 380),
        ),
        TransformSpec(
            "NWAC Stevens Observations",
            a / "nwac_stevens_observations.png",
            a / "nwac_stevens_observations_s.jpg",
            CropRect(0, 0, 1140, 1439),
            PercentageScale(75),
        ),
        TransformSpec(
            "Stevens Pass Courtyard",
            a / "stevenspasscourtyard.jpg",
            a / "stevenspasscourtyard_s.jpg",
            CropRect(0, 0, 1920, 1080),
            PercentageScale(50),
        ),
        TransformSpec(
            "Stevens Pass Snow Stake",
            a / "stevenspasssnowstake.jpg",
            a / "stevenspasssnowstake_s.jpg",
            CropRect(0, 0, 1920, 1080),
            PercentageScale(50),
        ),
        TransformSpec(
            "Weather.gov Extended Forecast",
            a / "weather_gov_extended_forecast.png",
            a / "weather_gov_extended_forecast_s.jpg",
            CropRect(0, 100, 1146, 300),
        ),
        TransformSpec(
            "WSDOT Stevens Pass (Big)",
            a / "wsdot_stevens_pass.jpg",
            a / "wsdot_stevens_pass_b.jpg",
            CropRect.identity(),
            PercentageScale(119),
        ),
    )

    # Paint order: later entries cover earlier ones.
    layers = (
        CompositeLayer(a / "background_s.jpg", (0, 0)),
        CompositeLayer(a / "weather_gov_hourly_forecast.png", (20, 1130)),
        CompositeLayer(a / "weather_gov_extended_forecast_s.jpg", (2680, 1860)),
        CompositeLayer(a / "nwac_avalanche_forcast_s.jpg", (3420, 420)),
        CompositeLayer(a / "nwac_stevens_observations_s.jpg", (20, 20)),
        CompositeLayer(a / "wsdot_us2_skykomish.jpg", (900, 20)),
        CompositeLayer(a / "wsdot_w_stevens.jpg", (1250, 20)),
        CompositeLayer(a / "wsdot_big_windy.jpg", (1600, 20)),
        CompositeLayer(a / "wsdot_stevens_pass_b.jpg", (1950, 20)),
        CompositeLayer(a / "wsdot_e_stevens_summit.jpg", (2360, 20)),
        CompositeLayer(a / "stevenspassjupiter.jpg", (900, 285)),
        CompositeLayer(a / "stevenspasssnowstake_s.jpg", (910, 1730)),
        CompositeLayer(a / "stevenspasscourtyard_s.jpg", (1600, 1730)),
        CompositeLayer(a / STATUS_SLOT_FILENAME, (3150, 420)),
        CompositeLayer(a / "nwac_stevens_avalanche_forcast_s.jpg", (3100, 40)),
    )

    manifest = Manifest(
        sources=sources,
        transforms=transforms,
        layers=layers,
        status_html_path=a / STATUS_HTML_FILENAME,
        status_slot_path=a / STATUS_SLOT_FILENAME,
    )
    return manifest.validate()
