import pytest
from pydantic import ValidationError

from rosterocr.models import RawCandidateRecord, StoredPlayerRecord, ValidatedPlayerRecord


def test_raw_candidate_is_frozen():
    record = RawCandidateRecord(jersey_number=12, position="QB", first_name="John", last_name="Smith")

    assert record.key == "john_smith_QB"

    with pytest.raises((TypeError, ValidationError)):
        record.position = "WR"  # type: ignore[attr-defined]


def test_key_tolerates_empty_first_name():
    record = RawCandidateRecord(position="WR", last_name="Bragg")
    assert record.key == "_bragg_WR"


def test_validated_record_from_candidate_adds_overall_attribute():
    candidate = RawCandidateRecord(
        jersey_number=7, position="CB", first_name="Sam", last_name="Lee", overall_rating=81
    )
    record = ValidatedPlayerRecord.from_candidate(candidate)
    assert record.attributes == {"OVR": 81}
    assert record.key == candidate.key


@pytest.mark.parametrize(
    "overrides",
    [
        {"overall_rating": 39},
        {"overall_rating": 100},
        {"jersey_number": 100},
        {"position": "OT"},
        {"last_name": ""},
    ],
)
def test_validated_record_rejects_invalid_values(overrides):
    payload = {
        "jersey_number": 1,
        "position": "QB",
        "first_name": "A",
        "last_name": "B",
        "overall_rating": 70,
        "attributes": {"OVR": 70},
    }
    payload.update(overrides)
    with pytest.raises(ValidationError):
        ValidatedPlayerRecord(**payload)


def test_stored_record_from_validated_keeps_scope():
    record = ValidatedPlayerRecord(
        jersey_number=1, position="K", last_name="Boot", overall_rating=60, attributes={"OVR": 60}
    )
    stored = StoredPlayerRecord.from_validated("dynasty-1", record)
    assert stored.scope_id == "dynasty-1"
    assert stored.record_id is None
    assert stored.key == record.key
