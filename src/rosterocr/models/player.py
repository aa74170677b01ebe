"""Canonical player models shared across parsing, merging and reconciliation."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from rosterocr.config.positions import (
    JERSEY_MAX,
    JERSEY_MIN,
    OVERALL_KEY,
    OVERALL_MAX,
    OVERALL_MIN,
    ROSTER_POSITIONS,
)


def identity_key(first_name: str, last_name: str, position: str) -> str:
    """Identity used to deduplicate and match player records."""

    return f"{(first_name or '').lower()}_{(last_name or '').lower()}_{position or ''}"


class RawCandidateRecord(BaseModel):
    """Unvalidated player payload produced by one parsed line or field set."""

    jersey_number: int = 0
    position: str = ""
    first_name: str = ""
    last_name: str = ""
    suffix: Optional[str] = None
    overall_rating: int = 0
    attributes: Dict[str, int] = Field(default_factory=dict)
    class_year: Optional[str] = None
    redshirt: bool = False
    height: Optional[str] = None
    weight: Optional[int] = None
    dev_trait: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        return identity_key(self.first_name, self.last_name, self.position)

    @property
    def attribute_count(self) -> int:
        return len(self.attributes)


class ValidatedPlayerRecord(BaseModel):
    """Player record that satisfied every validity check; safe for storage."""

    jersey_number: int = Field(..., ge=JERSEY_MIN, le=JERSEY_MAX)
    position: str
    first_name: str = ""
    last_name: str = Field(..., min_length=1)
    suffix: Optional[str] = None
    overall_rating: int = Field(..., ge=OVERALL_MIN, le=OVERALL_MAX)
    attributes: Dict[str, int] = Field(default_factory=dict)
    class_year: Optional[str] = None
    redshirt: bool = False
    height: Optional[str] = None
    weight: Optional[int] = None
    dev_trait: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("position")
    @classmethod
    def _known_position(cls, value: str) -> str:
        if value not in ROSTER_POSITIONS:
            raise ValueError(f"unknown position {value!r}")
        return value

    @field_validator("attributes")
    @classmethod
    def _has_overall(cls, value: Dict[str, int]) -> Dict[str, int]:
        if OVERALL_KEY not in value:
            raise ValueError(f"attributes must include {OVERALL_KEY}")
        return value

    @property
    def key(self) -> str:
        return identity_key(self.first_name, self.last_name, self.position)

    @classmethod
    def from_candidate(cls, candidate: RawCandidateRecord) -> "ValidatedPlayerRecord":
        attributes = dict(candidate.attributes)
        attributes.setdefault(OVERALL_KEY, candidate.overall_rating)
        return cls(**{**candidate.model_dump(), "attributes": attributes})


class StoredPlayerRecord(BaseModel):
    """Row shape of a player held by the external store for one scope."""

    record_id: Optional[int] = None
    scope_id: str
    first_name: str = ""
    last_name: str
    position: str
    suffix: Optional[str] = None
    jersey_number: int = 0
    overall_rating: int = 0
    attributes: Dict[str, int] = Field(default_factory=dict)
    class_year: Optional[str] = None
    redshirt: bool = False
    height: Optional[str] = None
    weight: Optional[int] = None
    dev_trait: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        return identity_key(self.first_name, self.last_name, self.position)

    @classmethod
    def from_validated(cls, scope_id: str, record: ValidatedPlayerRecord) -> "StoredPlayerRecord":
        return cls(scope_id=scope_id, **record.model_dump())
