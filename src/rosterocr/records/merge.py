"""Combine candidates from every extraction pass into one record per player."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

from rosterocr.models import RawCandidateRecord


_SCALAR_FIELDS = (
    "first_name",
    "last_name",
    "position",
    "suffix",
    "jersey_number",
    "overall_rating",
    "class_year",
    "height",
    "weight",
    "dev_trait",
)


@dataclass(frozen=True)
class MergedRecordSet:
    records: Tuple[RawCandidateRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[RawCandidateRecord]:
        return iter(self.records)

    def get(self, key: str) -> Optional[RawCandidateRecord]:
        for record in self.records:
            if record.key == key:
                return record
        return None


def _present(value: object) -> bool:
    # Jersey and overall use 0 as "not captured".
    return value not in (None, "", 0)


def merge_record(stored: RawCandidateRecord, incoming: RawCandidateRecord) -> RawCandidateRecord:
    """Merge two candidates that share an identity key.

    The record with strictly more attributes replaces the other one whole,
    with one exception: a jersey of 0 means the screen had no jersey column,
    so the stored jersey is carried onto a richer incoming record that lacks
    one. With equal counts the attribute maps are unioned with ``incoming``
    winning collisions, and each scalar takes the incoming value when it is
    present.
    """

    if incoming.attribute_count > stored.attribute_count:
        if incoming.jersey_number == 0 and stored.jersey_number:
            return incoming.model_copy(update={"jersey_number": stored.jersey_number})
        return incoming
    if incoming.attribute_count < stored.attribute_count:
        return stored

    update: Dict[str, object] = {"attributes": {**stored.attributes, **incoming.attributes}}
    for name in _SCALAR_FIELDS:
        value = getattr(incoming, name)
        if _present(value) and value != getattr(stored, name):
            update[name] = value
    update["redshirt"] = stored.redshirt or incoming.redshirt
    return stored.model_copy(update=update)


def merge_passes(pass_results: Iterable[Sequence[RawCandidateRecord]]) -> MergedRecordSet:
    """Reduce per-pass candidate lists, in pass order, to one record per key."""

    index: Dict[str, RawCandidateRecord] = {}
    for candidates in pass_results:
        for candidate in candidates:
            key = candidate.key
            existing = index.get(key)
            index[key] = candidate if existing is None else merge_record(existing, candidate)
    return MergedRecordSet(records=tuple(index.values()))
