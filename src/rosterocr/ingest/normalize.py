"""Clean raw OCR output line by line before parsing."""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple


# Ordered; earlier rules can create input for later ones.
_CONFUSIONS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"\}"), ")"),
    (re.compile(r"\{"), "("),
    (re.compile(r"\[(\d+)\]"), r"\1"),
    (re.compile(r"\[(\d+)"), r"\1"),
    (re.compile(r"\[x\]", re.IGNORECASE), "99"),
    (re.compile(r"\[x", re.IGNORECASE), "99"),
    (re.compile(r"(?<!\S)(?:Lal|hal)(?!\S)"), "99"),
    (re.compile(r"v\*OVR"), "OVR"),
    (re.compile(r"(?<!\S)O(?!\S)"), "0"),
    (re.compile(r"(?<!\S)l(?!\S)"), "1"),
)

_HIGHLIGHT_BLOCKS = re.compile(r"[█▀▄▌▐░▒▓]")
_LEADING_ARROWS = re.compile(r"^\s*[►>»▶➤➜]+")
_WHITESPACE = re.compile(r"\s+")


def _correct_confusions(line: str) -> str:
    for pattern, replacement in _CONFUSIONS:
        line = pattern.sub(replacement, line)
    return line


def _strip_markers(line: str) -> str:
    line = _HIGHLIGHT_BLOCKS.sub(" ", line)
    line = _LEADING_ARROWS.sub("", line)
    return _WHITESPACE.sub(" ", line).strip()


def normalize_line(line: str) -> str:
    """Apply confusion correction and marker stripping until the line is stable."""

    previous = None
    while line != previous:
        previous = line
        line = _strip_markers(_correct_confusions(line))
    return line


def normalize(raw_text: str) -> List[str]:
    """Return one cleaned line per physical line of *raw_text*.

    Lines that end up empty are kept as empty strings so line positions stay
    meaningful for header detection.
    """

    if not raw_text:
        return []
    return [normalize_line(line) for line in raw_text.splitlines()]
