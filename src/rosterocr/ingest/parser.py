"""Deterministic line grammars for roster tables and single-player screens."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from rosterocr.config.positions import (
    ATTRIBUTE_MAX,
    ATTRIBUTE_MIN,
    CLASS_YEARS,
    DEV_TRAITS,
    HEADER_MARKERS,
    JERSEY_MAX,
    JERSEY_MIN,
    OVERALL_HEADER_ALIASES,
    OVERALL_KEY,
    OVERALL_MAX,
    OVERALL_MIN,
    WEIGHT_MAX,
    WEIGHT_MIN,
    YEAR_CODES,
    correct_position,
    is_name_suffix,
)
from rosterocr.ingest.classify import ScreenType, classify_screen
from rosterocr.models import RawCandidateRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineMatch:
    grammar: str
    jersey: int
    position: str
    name: str
    overall: int
    overall_start: int
    class_year: Optional[str] = None
    redshirt: bool = False


_NAME = r"[A-Za-z][A-Za-z.'\-]*(?:\s+[A-Za-z][A-Za-z.'\-]*)*?"
_POSITION = r"(?=[A-Z0-9]*[A-Z])[A-Z0-9]{1,4}"
_OVERALL = r"(?P<overall>\d{1,3})\+?(?=\s|$)"

_GRAMMAR_A = re.compile(
    rf"^(?P<jersey>\d{{1,3}})\s+(?P<position>{_POSITION})\s+(?P<name>{_NAME})\s+{_OVERALL}"
)
_GRAMMAR_B = re.compile(
    rf"^(?P<position>{_POSITION})\s+(?P<jersey>\d{{1,3}})\s+(?P<name>{_NAME})\s+{_OVERALL}"
)
_GRAMMAR_C = re.compile(
    rf"^(?P<name>{_NAME})\s+(?P<position>{_POSITION})\s+(?P<jersey>\d{{1,3}})\s+{_OVERALL}"
)
_GRAMMAR_D = re.compile(
    r"^(?P<name>[A-Za-z][A-Za-z.'\-]*(?:\s+[A-Za-z][A-Za-z.'\-]*){0,3}?)"
    r"\s+(?P<year>FR|SO|JR|SR)\s*(?:\(\s*(?P<rs>RS)?\s*\))?"
    r"\s+(?P<position>[A-Za-z0-9]{1,4})\s+" + _OVERALL,
    re.IGNORECASE,
)


def _match_jersey_first(line: str) -> Optional[LineMatch]:
    match = _GRAMMAR_A.match(line)
    if match is None:
        return None
    return LineMatch(
        grammar="jersey_position_name",
        jersey=int(match["jersey"]),
        position=match["position"],
        name=match["name"],
        overall=int(match["overall"]),
        overall_start=match.start("overall"),
    )


def _match_position_first(line: str) -> Optional[LineMatch]:
    match = _GRAMMAR_B.match(line)
    if match is None:
        return None
    return LineMatch(
        grammar="position_jersey_name",
        jersey=int(match["jersey"]),
        position=match["position"],
        name=match["name"],
        overall=int(match["overall"]),
        overall_start=match.start("overall"),
    )


def _match_name_first(line: str) -> Optional[LineMatch]:
    match = _GRAMMAR_C.match(line)
    if match is None:
        return None
    # "Name SR QB 85 ..." belongs to the class-year layout unless that reading
    # yields no valid overall, as in "Name JR QB 12 85" with a name suffix.
    if match["name"].split()[-1] in YEAR_CODES:
        class_year = _match_class_year(line)
        if class_year is not None and OVERALL_MIN <= class_year.overall <= OVERALL_MAX:
            return None
    return LineMatch(
        grammar="name_position_jersey",
        jersey=int(match["jersey"]),
        position=match["position"],
        name=match["name"],
        overall=int(match["overall"]),
        overall_start=match.start("overall"),
    )


def _match_class_year(line: str) -> Optional[LineMatch]:
    match = _GRAMMAR_D.match(line)
    if match is None:
        return None
    return LineMatch(
        grammar="name_year_position",
        jersey=0,
        position=match["position"].upper(),
        name=match["name"],
        overall=int(match["overall"]),
        overall_start=match.start("overall"),
        class_year=match["year"].upper(),
        redshirt=match["rs"] is not None,
    )


LineGrammar = Callable[[str], Optional[LineMatch]]

LINE_GRAMMARS: Tuple[LineGrammar, ...] = (
    _match_jersey_first,
    _match_position_first,
    _match_name_first,
    _match_class_year,
)


def match_line(line: str) -> Optional[LineMatch]:
    """Return the first grammar match for *line*, trying grammars in order."""

    for grammar in LINE_GRAMMARS:
        result = grammar(line)
        if result is not None:
            return result
    return None


def split_name(name: str) -> Tuple[str, str, Optional[str]]:
    """Split a captured name into ``(first_name, last_name, suffix)``."""

    tokens = name.split()
    suffix: Optional[str] = None
    if len(tokens) > 1 and is_name_suffix(tokens[-1]):
        suffix = tokens.pop()
    if not tokens:
        return "", "", suffix

    joined = " ".join(tokens)
    if joined.count(".") == 1:
        left, right = (part.strip() for part in joined.split("."))
        if left and right and " " not in right:
            return left, right, suffix

    if len(tokens) == 1:
        return "", tokens[0], suffix
    return " ".join(tokens[:-1]), tokens[-1], suffix


def detect_header(lines: Sequence[str]) -> Tuple[Optional[List[str]], int]:
    """Find a column header on the first non-empty line.

    Returns the header's attribute tokens (or ``None``) and the index of the
    first line to parse as data.
    """

    for index, line in enumerate(lines):
        if not line.strip():
            continue
        tokens = [re.sub(r"[^A-Za-z]", "", part).upper() for part in line.split()]
        tokens = [token for token in tokens if 2 <= len(token) <= 4]
        token_set = set(tokens)
        has_marker = any(marker in token_set for marker in HEADER_MARKERS)
        has_overall = bool(token_set & OVERALL_HEADER_ALIASES) and "POS" in token_set
        if has_marker or has_overall:
            return tokens, index + 1
        return None, 0
    return None, 0


def map_header_attributes(line: str, overall_start: int, columns: Sequence[str]) -> Dict[str, int]:
    """Map numeric tokens, starting at the overall token, onto header columns.

    Column alignment is positional from the overall column onward, so headers
    with extra or missing columns can shift values.
    """

    overall_index = next(
        (i for i, column in enumerate(columns) if column in OVERALL_HEADER_ALIASES), None
    )
    if overall_index is None:
        return {}
    attributes: Dict[str, int] = {}
    for offset, raw in enumerate(line[overall_start:].split()):
        column_index = overall_index + offset
        if column_index >= len(columns):
            break
        token = raw.rstrip("+")
        if not token.isdigit():
            continue
        value = int(token)
        if ATTRIBUTE_MIN <= value <= ATTRIBUTE_MAX:
            column = columns[column_index]
            key = OVERALL_KEY if column in OVERALL_HEADER_ALIASES else column
            attributes[key] = value
    return attributes


def parse_roster_list(lines: Sequence[str]) -> List[RawCandidateRecord]:
    columns, start = detect_header(lines)
    if columns:
        logger.debug("Detected header columns: %s", columns)

    candidates: List[RawCandidateRecord] = []
    for line in lines[start:]:
        if not line:
            continue
        match = match_line(line)
        if match is None:
            continue
        if not (OVERALL_MIN <= match.overall <= OVERALL_MAX):
            continue
        if not (JERSEY_MIN <= match.jersey <= JERSEY_MAX):
            continue
        first_name, last_name, suffix = split_name(match.name)
        attributes: Dict[str, int] = {}
        if columns:
            attributes.update(map_header_attributes(line, match.overall_start, columns))
        attributes[OVERALL_KEY] = match.overall
        candidates.append(
            RawCandidateRecord(
                jersey_number=match.jersey,
                position=correct_position(match.position),
                first_name=first_name,
                last_name=last_name,
                suffix=suffix,
                overall_rating=match.overall,
                attributes=attributes,
                class_year=match.class_year,
                redshirt=match.redshirt,
            )
        )
    logger.debug("Roster grammar produced %d candidates from %d lines", len(candidates), len(lines))
    return candidates


_DETAIL_NAME = re.compile(r"^([A-Z][a-z]+)\s+([A-Z]+)$")
_DETAIL_LABELS = frozenset(
    {
        "Position", "Class", "Height", "Weight", "Hometown", "Pipeline",
        "Archetype", "Dealbreaker", "Development", "Dev", "Star", "Overview", "Ratings",
    }
)
_DETAIL_POSITION = re.compile(
    r"Position\s+([A-Z0-9]{1,4})\s*(?:\([A-Z]\))?\s*#?(\d+)", re.IGNORECASE
)
_DETAIL_CLASS = re.compile(
    r"(?:Class\s+)?\b(Freshman|Sophomore|Junior|Senior)\b\s*(?:\(\s*([A-Z]{2})\b)?",
    re.IGNORECASE,
)
_REDSHIRT = re.compile(r"\(\s*RS\s*\)", re.IGNORECASE)
_DETAIL_OVERALL = re.compile(r"\b(\d{2})\s*(?:OVR|OVERALL)\b", re.IGNORECASE)
_DETAIL_HEIGHT = re.compile(r"(?:Height\s+)?\b(\d)\s*['′’]\s*(\d{1,2})\s*[\"″”]?")
_DETAIL_WEIGHT = re.compile(r"Weight\s*:?\s*(\d{2,3})\b|\b(\d{2,3})\s*lbs?\b", re.IGNORECASE)
_DETAIL_DEV_TRAIT = re.compile(
    r"(?:Development|Dev)\s+Trait\s*:?\s*([A-Za-z][A-Za-z ]*)", re.IGNORECASE
)


def _first_match(pattern: re.Pattern, lines: Sequence[str]) -> Optional[re.Match]:
    for line in lines:
        match = pattern.search(line)
        if match:
            return match
    return None


def parse_detail_screen(lines: Sequence[str]) -> List[RawCandidateRecord]:
    """Extract one player from a single-player screen.

    Fields are searched independently, so their order on screen does not
    matter. Returns an empty list unless a last name, a position and an
    overall rating of at least 40 were all found.
    """

    first_name = last_name = ""
    for line in lines:
        match = _DETAIL_NAME.match(line)
        if match and match.group(1) not in _DETAIL_LABELS:
            first_name, last_name = match.group(1), match.group(2)
            break

    position = ""
    jersey = 0
    position_match = _first_match(_DETAIL_POSITION, lines)
    if position_match:
        position = correct_position(position_match.group(1))
        jersey = int(position_match.group(2))

    class_year: Optional[str] = None
    redshirt = False
    for line in lines:
        match = _DETAIL_CLASS.search(line)
        if match:
            abbreviation = (match.group(2) or "").upper()
            class_year = abbreviation if abbreviation in YEAR_CODES else CLASS_YEARS[match.group(1).upper()]
            redshirt = bool(_REDSHIRT.search(line))
            break

    overall = 0
    for line in lines:
        for match in _DETAIL_OVERALL.finditer(line):
            value = int(match.group(1))
            if OVERALL_MIN <= value <= OVERALL_MAX:
                overall = value
                break
        if overall:
            break

    height: Optional[str] = None
    height_match = _first_match(_DETAIL_HEIGHT, lines)
    if height_match:
        height = f"{height_match.group(1)}'{height_match.group(2)}\""

    weight: Optional[int] = None
    for line in lines:
        for match in _DETAIL_WEIGHT.finditer(line):
            value = int(match.group(1) or match.group(2))
            if WEIGHT_MIN <= value <= WEIGHT_MAX:
                weight = value
                break
        if weight is not None:
            break

    dev_trait: Optional[str] = None
    trait_match = _first_match(_DETAIL_DEV_TRAIT, lines)
    if trait_match:
        value = trait_match.group(1).strip()
        known = {trait.upper(): trait for trait in DEV_TRAITS}
        dev_trait = known.get(value.split()[0].upper(), value) if value else None

    if not (last_name and position and overall >= OVERALL_MIN):
        logger.debug(
            "Detail grammar incomplete (last_name=%r position=%r overall=%d)",
            last_name,
            position,
            overall,
        )
        return []

    return [
        RawCandidateRecord(
            jersey_number=jersey,
            position=position,
            first_name=first_name,
            last_name=last_name,
            overall_rating=overall,
            attributes={OVERALL_KEY: overall},
            class_year=class_year,
            redshirt=redshirt,
            height=height,
            weight=weight,
            dev_trait=dev_trait,
        )
    ]


def parse(lines: Sequence[str]) -> List[RawCandidateRecord]:
    """Parse cleaned lines, trying the other grammar family when the first finds nothing."""

    screen = classify_screen(lines)
    if screen is ScreenType.DETAIL_SCREEN:
        order = (parse_detail_screen, parse_roster_list)
    else:
        order = (parse_roster_list, parse_detail_screen)
    for parser in order:
        candidates = parser(lines)
        if candidates:
            return candidates
    logger.info("No candidates recovered from %d lines (classified as %s)", len(lines), screen.value)
    return []
