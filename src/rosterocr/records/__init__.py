"""Merge, validation and reconciliation of candidate player records."""

from .merge import MergedRecordSet, merge_passes, merge_record
from .reconcile import ReconciliationResult, reconcile
from .validation import ValidationIssue, ValidationResult, validate_candidates

__all__ = [
    "MergedRecordSet",
    "ReconciliationResult",
    "ValidationIssue",
    "ValidationResult",
    "merge_passes",
    "merge_record",
    "reconcile",
    "validate_candidates",
]
