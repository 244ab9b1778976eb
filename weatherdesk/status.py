"""Pass-status classification from scraped HTML and overlay selection."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .models import ClosureStatus, OverlayGraphic
from .utils import clean_conditions_text, collapse_whitespace

logger = logging.getLogger("weatherdesk")

LABEL_CLASS = "conditionLabel"
VALUE_CLASS = "conditionValue"

OVERLAY_FILENAMES: Dict[OverlayGraphic, str] = {
    OverlayGraphic.BOTH_CLOSED: "hw2_closed.png",
    OverlayGraphic.EAST_ONLY_CLOSED: "hw2_closed_e.png",
    OverlayGraphic.WEST_ONLY_CLOSED: "hw2_closed_w.png",
}


def _has_class(name: str):
    def _match(value: Optional[str]) -> bool:
        return bool(value) and name in value

    return _match


def extract_condition_pairs(html_fragment: str) -> List[Tuple[str, str]]:
    """Return ``(label, value)`` text pairs for every label/value grouping node.

    A grouping node is any element with a direct ``conditionLabel`` child and a
    direct ``conditionValue`` child. Text covers all descendants, with
    whitespace collapsed.
    """
    soup = BeautifulSoup(html_fragment or "", "html.parser")
    pairs: List[Tuple[str, str]] = []
    seen = set()
    for label_tag in soup.find_all(class_=_has_class(LABEL_CLASS)):
        parent = label_tag.parent
        if parent is None or id(parent) in seen:
            continue
        value_tag = parent.find(class_=_has_class(VALUE_CLASS), recursive=False)
        if value_tag is None:
            continue
        seen.add(id(parent))
        label = collapse_whitespace(label_tag.get_text())
        value = collapse_whitespace(value_tag.get_text())
        if label and value:
            pairs.append((label, value))
    return pairs


def is_closed_text(value: str) -> bool:
    """A value means closed when it says "closed" but not "no restrictions"."""
    lowered = value.lower()
    return "closed" in lowered and "no restrictions" not in lowered


def classify(html_fragment: str) -> ClosureStatus:
    """Classify a scraped pass-status fragment into a ``ClosureStatus``.

    Without any eastbound or westbound pair the status is unknown, which is
    distinct from open.
    """
    east: Optional[str] = None
    west: Optional[str] = None
    conditions: Optional[str] = None

    # A repeated label keeps its first value.
    for label, value in extract_condition_pairs(html_fragment):
        lowered = label.lower()
        if "eastbound" in lowered and east is None:
            east = value
        if "westbound" in lowered and west is None:
            west = value
        if "conditions" in lowered and conditions is None:
            conditions = value

    if east is None and west is None:
        return ClosureStatus.unknown()

    is_east_closed = is_closed_text(east or "")
    is_west_closed = is_closed_text(west or "")
    conditions_text = ""
    if (is_east_closed or is_west_closed) and conditions:
        conditions_text = clean_conditions_text(conditions)

    return ClosureStatus(
        east_label=east or "",
        west_label=west or "",
        is_east_closed=is_east_closed,
        is_west_closed=is_west_closed,
        conditions_text=conditions_text,
    )


def classify_file(path: Path) -> ClosureStatus:
    """Classify a fragment stored on disk; an unreadable file is unknown."""
    try:
        html = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("Failed to read pass status HTML %s: %s", path, exc)
        return ClosureStatus.unknown()
    return classify(html)


def select_overlay(status: ClosureStatus) -> OverlayGraphic:
    if not status.known:
        return OverlayGraphic.NONE
    if status.is_east_closed and status.is_west_closed:
        return OverlayGraphic.BOTH_CLOSED
    if status.is_east_closed:
        return OverlayGraphic.EAST_ONLY_CLOSED
    if status.is_west_closed:
        return OverlayGraphic.WEST_ONLY_CLOSED
    return OverlayGraphic.NONE


def overlay_path(overlay: OverlayGraphic, graphics_dir: Path) -> Optional[Path]:
    filename = OVERLAY_FILENAMES.get(overlay)
    return Path(graphics_dir) / filename if filename else None


def apply_overlay(overlay: OverlayGraphic, graphics_dir: Path, slot_path: Path) -> Optional[Path]:
    """Copy the selected graphic into the status slot, or clear the slot.

    Returns the slot path when a graphic was installed, otherwise ``None``.
    """
    slot_path = Path(slot_path)
    source = overlay_path(overlay, graphics_dir)
    if source is None:
        slot_path.unlink(missing_ok=True)
        logger.info("No pass status graphic displayed")
        return None
    try:
        slot_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, slot_path)
    except OSError as exc:
        logger.warning("Failed to copy pass status graphic from %s: %s", source, exc)
        slot_path.unlink(missing_ok=True)
        return None
    logger.info("Pass status graphic copied: %s -> %s", source, slot_path)
    return slot_path
