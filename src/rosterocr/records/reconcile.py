"""Match validated records against the players already stored for a scope."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from rosterocr.models import StoredPlayerRecord, ValidatedPlayerRecord


@dataclass(frozen=True)
class ReconciliationResult:
    inserted: List[ValidatedPlayerRecord] = field(default_factory=list)
    updated: List[StoredPlayerRecord] = field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)

    @property
    def updated_count(self) -> int:
        return len(self.updated)


def apply_update(existing: StoredPlayerRecord, record: ValidatedPlayerRecord) -> StoredPlayerRecord:
    """Fold *record* into *existing*; incoming attribute values win."""

    update: Dict[str, object] = {"attributes": {**existing.attributes, **record.attributes}}
    # A jersey of 0 means the screen had no jersey column.
    if record.jersey_number:
        update["jersey_number"] = record.jersey_number
    if record.overall_rating:
        update["overall_rating"] = record.overall_rating
    for name in ("suffix", "class_year", "height", "weight", "dev_trait"):
        value = getattr(record, name)
        if value is not None:
            update[name] = value
    if record.redshirt:
        update["redshirt"] = True
    return existing.model_copy(update=update)


def reconcile(
    valid_records: Iterable[ValidatedPlayerRecord],
    existing: Iterable[StoredPlayerRecord],
) -> ReconciliationResult:
    """Split *valid_records* into inserts and updates against *existing*.

    ``existing`` is indexed once by identity key; no storage access happens
    here.
    """

    index: Dict[str, StoredPlayerRecord] = {record.key: record for record in existing}
    inserted: Dict[str, ValidatedPlayerRecord] = {}
    updated: Dict[str, StoredPlayerRecord] = {}
    for record in valid_records:
        key = record.key
        current = updated.get(key) or index.get(key)
        if current is not None:
            updated[key] = apply_update(current, record)
        else:
            inserted[key] = record
    return ReconciliationResult(inserted=list(inserted.values()), updated=list(updated.values()))
