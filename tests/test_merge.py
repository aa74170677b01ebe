from rosterocr.models import RawCandidateRecord
from rosterocr.records import merge_passes


def _player(last, attributes, **fields):
    payload = {
        "jersey_number": 55,
        "position": "DT",
        "first_name": "Jake",
        "last_name": last,
        "overall_rating": attributes.get("OVR", 80),
        "attributes": attributes,
    }
    payload.update(fields)
    return RawCandidateRecord(**payload)


def test_equal_cardinality_unions_attributes():
    normal = [
        _player("Kilgore", {"OVR": 82, "SPD": 70}),
        _player("Thompson", {"OVR": 75}, position="WR"),
    ]
    inverted = [
        _player("Kilgore", {"OVR": 82, "ACC": 77}),
        _player("Bettis", {"OVR": 71}, position="HB"),
    ]
    merged = merge_passes([normal, inverted])

    assert len(merged) == 3
    kilgore = merged.get("jake_kilgore_DT")
    assert kilgore.attributes == {"OVR": 82, "SPD": 70, "ACC": 77}


def test_newer_values_win_on_collision():
    merged = merge_passes(
        [[_player("Kilgore", {"OVR": 82, "SPD": 70})], [_player("Kilgore", {"OVR": 83, "SPD": 71})]]
    )
    [record] = merged
    assert record.attributes == {"OVR": 83, "SPD": 71}
    assert record.overall_rating == 83


def test_strictly_richer_record_replaces_stored():
    poor = _player("Kilgore", {"OVR": 82}, jersey_number=0)
    rich = _player("Kilgore", {"OVR": 82, "SPD": 70, "ACC": 77}, jersey_number=0, height="6'4\"")
    [record] = merge_passes([[poor], [rich]])
    assert record == rich

    [record] = merge_passes([[rich], [poor]])
    assert record == rich


def test_richer_placeholder_jersey_keeps_known_number():
    known = _player("Kilgore", {"OVR": 82}, jersey_number=55)
    rich = _player("Kilgore", {"OVR": 82, "SPD": 70}, jersey_number=0)
    [record] = merge_passes([[known], [rich]])
    assert record.jersey_number == 55
    assert record.attributes == {"OVR": 82, "SPD": 70}


def test_empty_names_are_valid_keys():
    merged = merge_passes(
        [[_player("", {"OVR": 60}, first_name="")], [_player("", {"OVR": 61}, first_name="")]]
    )
    assert len(merged) == 1


def test_no_passes():
    assert len(merge_passes([])) == 0
    assert len(merge_passes([[], []])) == 0
