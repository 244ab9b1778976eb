"""Utility helpers for text normalization and timestamped file names."""

from __future__ import annotations

import datetime as dt
import re
from typing import Optional

WHITESPACE_PATTERN = re.compile(r"\s+")
WHITESPACE_RUN_PATTERN = re.compile(r"\s{2,}")
LINE_BREAK_PATTERN = re.compile(r"[\r\n\t]")


def collapse_whitespace(value: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""
    return WHITESPACE_PATTERN.sub(" ", value).strip()


def clean_conditions_text(value: str) -> str:
    """Drop line breaks and tabs, then squeeze runs of two or more spaces."""
    value = LINE_BREAK_PATTERN.sub(" ", value)
    return WHITESPACE_RUN_PATTERN.sub(" ", value).strip()


def timestamp(now: Optional[dt.datetime] = None, fmt: str = "%y%m%d-%H%M") -> str:
    """Format ``now`` (default: local time) for use in sortable file names."""
    return (now or dt.datetime.now()).strftime(fmt)
