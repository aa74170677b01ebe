"""Position, attribute and screen vocabulary for the supported roster layouts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class PositionGroup:
    name: str
    positions: Tuple[str, ...]


_POSITION_GROUPS: Tuple[PositionGroup, ...] = (
    PositionGroup(name="offense", positions=("QB", "HB", "FB", "WR", "TE")),
    PositionGroup(name="offensive_line", positions=("LT", "LG", "C", "RG", "RT")),
    PositionGroup(name="defensive_line", positions=("LEDG", "REDG", "DT")),
    PositionGroup(name="linebackers", positions=("SAM", "MIKE", "WILL")),
    PositionGroup(name="secondary", positions=("CB", "FS", "SS")),
    PositionGroup(name="special_teams", positions=("K", "P")),
)

ROSTER_POSITIONS: FrozenSet[str] = frozenset(
    position for group in _POSITION_GROUPS for position in group.positions
)

# Generic "OT" never appears on these rosters (tackles are LT/RT), so every
# variant of it is a misread defensive tackle.
POSITION_MISREADS: Mapping[str, str] = {
    "OT": "DT",
    "0T": "DT",
    "OL": "DT",
    "OI": "DT",
    "DL": "DT",
    "D1": "DT",
    "DI": "DT",
    "HG": "HB",
    "W8": "WR",
}

ATTRIBUTE_CODES: Tuple[str, ...] = (
    "OVR", "SPD", "ACC", "AGI", "COD", "STR", "AWR", "CAR", "BCV", "BTK",
    "TRK", "SFA", "SPM", "JKM", "CTH", "CIT", "SPC", "SRR", "MRR", "DRR",
    "RLS", "JMP", "THP", "SAC", "MAC", "DAC", "RUN", "TUP", "BSK", "PAC",
    "PBK", "PBP", "PBF", "RBK", "RBP", "RBF", "LBK", "IBL", "PRC", "TAK",
    "POW", "BSH", "FMV", "PMV", "PUR", "MCV", "ZCV", "PRS", "RET", "KPW",
    "KAC", "STA", "TGH", "INJ", "LSP",
)

OVERALL_KEY = "OVR"

# Header spellings produced by OCR for the overall column.
OVERALL_HEADER_ALIASES: FrozenSet[str] = frozenset({"OVR", "VOVR"})

# Any of these in the first line marks it as a column header.
HEADER_MARKERS: Tuple[str, ...] = ("SPD", "ACC", "AGI", "COD")

DETAIL_SCREEN_KEYWORDS: Tuple[str, ...] = (
    "OVERVIEW",
    "RATINGS",
    "MENTALS",
    "PHYSICALS",
    "ARCHETYPE",
    "DEVELOPMENT TRAIT",
    "DEALBREAKER",
    "PIPELINE",
    "HOMETOWN",
    "STAR RATING",
)

YEAR_CODES: FrozenSet[str] = frozenset({"FR", "SO", "JR", "SR"})

CLASS_YEARS: Mapping[str, str] = {
    "FRESHMAN": "FR",
    "SOPHOMORE": "SO",
    "JUNIOR": "JR",
    "SENIOR": "SR",
}

DEV_TRAITS: Tuple[str, ...] = ("Normal", "Impact", "Star", "Elite")

NAME_SUFFIXES: FrozenSet[str] = frozenset(
    {"JR", "JR.", "SR", "SR.", "II", "III", "IV", "V", "2ND", "3RD", "4TH", "5TH"}
)

OVERALL_MIN = 40
OVERALL_MAX = 99
JERSEY_MIN = 0
JERSEY_MAX = 99
ATTRIBUTE_MIN = 0
ATTRIBUTE_MAX = 99
WEIGHT_MIN = 150
WEIGHT_MAX = 400


def iter_position_groups() -> Iterable[PositionGroup]:
    """Return an iterator of all configured position groups."""

    return iter(_POSITION_GROUPS)


def is_roster_position(position: str) -> bool:
    return position in ROSTER_POSITIONS


def correct_position(raw: str) -> str:
    """Map a recognized OCR misread of a position code back to its real code."""

    token = raw.strip().upper()
    return POSITION_MISREADS.get(token, token)


def is_name_suffix(token: str) -> bool:
    return token.upper() in NAME_SUFFIXES

