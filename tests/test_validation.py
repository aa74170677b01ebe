from rosterocr.models import RawCandidateRecord
from rosterocr.records import validate_candidates


def _candidate(**fields):
    payload = {
        "jersey_number": 12,
        "position": "QB",
        "first_name": "John",
        "last_name": "Smith",
        "overall_rating": 85,
        "attributes": {"OVR": 85},
    }
    payload.update(fields)
    return RawCandidateRecord(**payload)


def test_valid_candidates_pass():
    result = validate_candidates([_candidate(), _candidate(last_name="Jones", overall_rating=40)])
    assert result.ok
    assert [record.last_name for record in result.valid] == ["Smith", "Jones"]


def test_every_failing_check_is_reported():
    result = validate_candidates(
        [
            _candidate(),
            _candidate(last_name="", position="OT", overall_rating=100, jersey_number=120),
        ]
    )
    assert not result.ok
    assert len(result.valid) == 1
    fields = sorted(issue.field for issue in result.errors)
    assert fields == ["jersey_number", "last_name", "overall_rating", "position"]
    assert {issue.index for issue in result.errors} == {1}


def test_overall_boundaries():
    result = validate_candidates(
        [
            _candidate(overall_rating=40),
            _candidate(overall_rating=99),
            _candidate(overall_rating=39),
            _candidate(overall_rating=100),
        ]
    )
    assert len(result.valid) == 2
    assert [issue.index for issue in result.errors] == [2, 3]


def test_missing_overall_attribute_is_filled():
    result = validate_candidates([_candidate(attributes={})])
    assert result.valid[0].attributes == {"OVR": 85}
