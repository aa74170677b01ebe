"""Per-record checks that partition candidates into storable and flagged."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from pydantic import ValidationError

from rosterocr.config.positions import (
    JERSEY_MAX,
    JERSEY_MIN,
    OVERALL_MAX,
    OVERALL_MIN,
    ROSTER_POSITIONS,
)
from rosterocr.models import RawCandidateRecord, ValidatedPlayerRecord


@dataclass(frozen=True)
class ValidationIssue:
    index: int
    field: str
    reason: str


@dataclass(frozen=True)
class ValidationResult:
    valid: List[ValidatedPlayerRecord] = field(default_factory=list)
    errors: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def check_candidate(index: int, candidate: RawCandidateRecord) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if not candidate.last_name.strip():
        issues.append(ValidationIssue(index, "last_name", "Missing last name"))
    if candidate.position not in ROSTER_POSITIONS:
        issues.append(ValidationIssue(index, "position", f"Invalid position: {candidate.position!r}"))
    if not (OVERALL_MIN <= candidate.overall_rating <= OVERALL_MAX):
        issues.append(
            ValidationIssue(index, "overall_rating", f"Invalid overall rating: {candidate.overall_rating}")
        )
    if not (JERSEY_MIN <= candidate.jersey_number <= JERSEY_MAX):
        issues.append(
            ValidationIssue(index, "jersey_number", f"Invalid jersey number: {candidate.jersey_number}")
        )
    return issues


def validate_candidates(candidates: Iterable[RawCandidateRecord]) -> ValidationResult:
    """Validate every candidate; failures are reported, never raised."""

    valid: List[ValidatedPlayerRecord] = []
    errors: List[ValidationIssue] = []
    for index, candidate in enumerate(candidates):
        issues = check_candidate(index, candidate)
        if issues:
            errors.extend(issues)
            continue
        try:
            valid.append(ValidatedPlayerRecord.from_candidate(candidate))
        except ValidationError as exc:
            errors.append(ValidationIssue(index, "record", str(exc)))
    return ValidationResult(valid=valid, errors=errors)
