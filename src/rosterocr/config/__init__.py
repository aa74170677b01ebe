"""Configuration helpers for roster vocabularies and validity bounds."""

from .positions import (
    ATTRIBUTE_CODES,
    OVERALL_KEY,
    POSITION_MISREADS,
    ROSTER_POSITIONS,
    PositionGroup,
    correct_position,
    is_name_suffix,
    is_roster_position,
    iter_position_groups,
)

__all__ = [
    "ATTRIBUTE_CODES",
    "OVERALL_KEY",
    "POSITION_MISREADS",
    "ROSTER_POSITIONS",
    "PositionGroup",
    "correct_position",
    "is_name_suffix",
    "is_roster_position",
    "iter_position_groups",
]
