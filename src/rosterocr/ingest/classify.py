"""Heuristic screen-type detection for cleaned OCR text."""

from __future__ import annotations

import re
from enum import Enum
from typing import Sequence

from rosterocr.config.positions import DETAIL_SCREEN_KEYWORDS


class ScreenType(str, Enum):
    ROSTER_LIST = "roster_list"
    DETAIL_SCREEN = "detail_screen"


LABELED_FIELD_PATTERNS = (
    re.compile(r"\bPOSITION\s+[A-Z0-9]{1,4}\b", re.IGNORECASE),
    re.compile(r"\bCLASS\s+(?:FRESHMAN|SOPHOMORE|JUNIOR|SENIOR)\b", re.IGNORECASE),
    re.compile(r"\bHEIGHT\s+\d", re.IGNORECASE),
    re.compile(r"\bWEIGHT\s+\d", re.IGNORECASE),
)

OVERALL_BADGE = re.compile(r"\b\d{2}\s*(?:OVR|OVERALL)\b", re.IGNORECASE)


def count_detail_keywords(text: str) -> int:
    upper = text.upper()
    return sum(1 for keyword in DETAIL_SCREEN_KEYWORDS if keyword in upper)


def count_labeled_fields(text: str) -> int:
    return sum(1 for pattern in LABELED_FIELD_PATTERNS if pattern.search(text))


def classify_screen(lines: Sequence[str]) -> ScreenType:
    """Guess whether *lines* come from a single-player view or a roster table.

    The answer only decides which grammar family is tried first.
    """

    text = "\n".join(lines)
    labeled = count_labeled_fields(text)
    if count_detail_keywords(text) >= 2 or labeled >= 2:
        return ScreenType.DETAIL_SCREEN
    if labeled >= 1 and OVERALL_BADGE.search(text):
        return ScreenType.DETAIL_SCREEN
    return ScreenType.ROSTER_LIST
