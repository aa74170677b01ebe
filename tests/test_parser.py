import pytest

from rosterocr.ingest.normalize import normalize
from rosterocr.ingest.parser import (
    detect_header,
    match_line,
    parse,
    parse_detail_screen,
    parse_roster_list,
    split_name,
)


def test_jersey_first_line():
    [record] = parse_roster_list(["12 QB John Smith 85"])
    assert record.jersey_number == 12
    assert record.position == "QB"
    assert record.first_name == "John"
    assert record.last_name == "Smith"
    assert record.overall_rating == 85
    assert record.attributes == {"OVR": 85}


def test_tackle_misread_corrected():
    [record] = parse_roster_list(["12 OT John Smith 85"])
    assert record.position == "DT"


@pytest.mark.parametrize(
    "line, grammar",
    [
        ("12 QB John Smith 85", "jersey_position_name"),
        ("QB 12 John Smith 85", "position_jersey_name"),
        ("John Smith QB 12 85", "name_position_jersey"),
        ("T.Bragg SO (RS) WR 89", "name_year_position"),
    ],
)
def test_grammar_selection(line, grammar):
    match = match_line(line)
    assert match is not None
    assert match.grammar == grammar


def test_class_year_layout():
    [record] = parse_roster_list(["T.Bragg SO (RS) WR 89+"])
    assert record.jersey_number == 0
    assert record.first_name == "T"
    assert record.last_name == "Bragg"
    assert record.position == "WR"
    assert record.overall_rating == 89
    assert record.class_year == "SO"
    assert record.redshirt is True


def test_year_code_not_swallowed_by_name_first_grammar():
    [record] = parse_roster_list(["John Smith SR QB 85 90"])
    assert record.last_name == "Smith"
    assert record.class_year == "SR"
    assert record.position == "QB"
    assert record.overall_rating == 85


@pytest.mark.parametrize("suffix", ["JR", "Jr", "SR"])
def test_upper_case_suffix_before_position_and_jersey(suffix):
    [record] = parse(normalize(f"Marcus Smith {suffix} QB 12 85"))
    assert (record.first_name, record.last_name) == ("Marcus", "Smith")
    assert record.suffix == suffix
    assert record.jersey_number == 12
    assert record.overall_rating == 85
    assert record.class_year is None


@pytest.mark.parametrize(
    "overall, accepted",
    [(40, True), (99, True), (39, False), (100, False)],
)
def test_overall_boundaries(overall, accepted):
    records = parse_roster_list([f"12 QB John Smith {overall}"])
    assert bool(records) is accepted


def test_jersey_out_of_range_skipped():
    assert parse_roster_list(["100 QB John Smith 85"]) == []


def test_noise_lines_skipped():
    records = parse_roster_list(["ROSTER", "Press X to continue", "12 QB John Smith 85", ""])
    assert len(records) == 1


@pytest.mark.parametrize(
    "name, expected",
    [
        ("John Smith", ("John", "Smith", None)),
        ("Smith", ("", "Smith", None)),
        ("John Smith Jr.", ("John", "Smith", "Jr.")),
        ("Marvin Harrison III", ("Marvin", "Harrison", "III")),
        ("T.Bragg", ("T", "Bragg", None)),
        ("Mary Ann Lee", ("Mary Ann", "Lee", None)),
    ],
)
def test_split_name(name, expected):
    assert split_name(name) == expected


def test_suffix_stored_separately():
    [record] = parse_roster_list(["5 HB Bobby Jones Jr. 77"])
    assert record.last_name == "Jones"
    assert record.suffix == "Jr."


def test_header_columns_mapped_from_overall():
    lines = [
        "NAME POS OVR SPD ACC",
        "12 QB John Smith 85 90 150",
    ]
    columns, start = detect_header(lines)
    assert columns == ["NAME", "POS", "OVR", "SPD", "ACC"]
    assert start == 1
    [record] = parse_roster_list(lines)
    assert record.attributes == {"OVR": 85, "SPD": 90}


def test_header_skips_leading_blank_lines():
    lines = ["", "POS VOVR SPD", "12 QB John Smith 85 91"]
    [record] = parse_roster_list(lines)
    assert record.attributes == {"OVR": 85, "SPD": 91}


def test_data_line_is_not_taken_for_header():
    columns, start = detect_header(["12 QB John Smith 85"])
    assert columns is None
    assert start == 0


def test_detail_screen():
    lines = ["Cai WOODS", "Position QB (R) #16", "84 OVR"]
    [record] = parse_detail_screen(lines)
    assert record.first_name == "Cai"
    assert record.last_name == "WOODS"
    assert record.position == "QB"
    assert record.jersey_number == 16
    assert record.overall_rating == 84


def test_detail_screen_optional_fields_any_order():
    lines = [
        "Development Trait Elite",
        "Weight 211 lbs",
        "Class Senior (SR (RS))",
        "Height 6'2\"",
        "Position LEDG #91",
        "Jalen MILLER",
        "OVERVIEW RATINGS",
        "88 OVR",
    ]
    [record] = parse_detail_screen(lines)
    assert record.last_name == "MILLER"
    assert record.position == "LEDG"
    assert record.jersey_number == 91
    assert record.class_year == "SR"
    assert record.redshirt is True
    assert record.height == "6'2\""
    assert record.weight == 211
    assert record.dev_trait == "Elite"


def test_detail_screen_requires_core_fields():
    assert parse_detail_screen(["Cai WOODS", "84 OVR"]) == []
    assert parse_detail_screen(["Cai WOODS", "Position QB #16", "35 OVR"]) == []


def test_parse_falls_back_to_other_grammar_family():
    # Classified as a detail screen, but only roster lines are parseable.
    lines = ["OVERVIEW", "RATINGS", "12 QB John Smith 85"]
    [record] = parse(lines)
    assert record.last_name == "Smith"


def test_parse_returns_nothing_for_unparseable_text():
    assert parse(["Loading...", "Please wait"]) == []
