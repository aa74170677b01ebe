from rosterocr.ingest.classify import ScreenType, classify_screen


def test_roster_table_is_roster_list():
    lines = ["NAME POS OVR SPD", "12 QB John Smith 85 90"]
    assert classify_screen(lines) is ScreenType.ROSTER_LIST


def test_two_keywords_mark_detail_screen():
    assert classify_screen(["OVERVIEW", "RATINGS"]) is ScreenType.DETAIL_SCREEN


def test_two_labeled_fields_mark_detail_screen():
    lines = ["Position QB (R) #16", "Height 6'2\""]
    assert classify_screen(lines) is ScreenType.DETAIL_SCREEN


def test_overall_badge_with_one_labeled_field():
    lines = ["Cai WOODS", "Position QB (R) #16", "84 OVR"]
    assert classify_screen(lines) is ScreenType.DETAIL_SCREEN


def test_single_signal_is_not_enough():
    assert classify_screen(["84 OVR"]) is ScreenType.ROSTER_LIST
    assert classify_screen(["HOMETOWN Austin"]) is ScreenType.ROSTER_LIST
