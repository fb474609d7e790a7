import datetime
from decimal import Decimal

import pytest

from records.sorting import (
    ASC,
    COMPOSITE,
    DATE,
    DESC,
    NUMERIC,
    STRING,
    Column,
    SortState,
    parse_instant,
    parse_number,
    sort_rows,
)

COLUMNS = {
    "session_number": Column("session_number", NUMERIC),
    "date": Column("date", DATE),
    "student_name": Column("student_name", STRING),
    "type": Column("type", COMPOSITE, labels={"is_medical": "Medical", "is_psychological": "Psychological"}),
}

ROWS = [
    {"id": 1, "session_number": "10", "date": "2024-03-01", "student_name": "carla"},
    {"id": 2, "session_number": 9, "date": "2024-01-15T08:30:00Z", "student_name": "ana"},
    {"id": 3, "session_number": None, "date": "0000-00-00", "student_name": "ben"},
    {"id": 4, "session_number": "x", "date": "2023-12-31", "student_name": None},
    {"id": 5, "session_number": 2.5, "date": None, "student_name": "ana"},
]


def ids(rows):
    return [row["id"] for row in rows]


def test_numeric_sort_puts_nulls_first():
    assert ids(sort_rows(ROWS, "session_number", ASC, COLUMNS)) == [3, 4, 5, 2, 1]


def test_date_sort_treats_placeholders_as_null():
    assert ids(sort_rows(ROWS, "date", ASC, COLUMNS)) == [3, 5, 4, 2, 1]


def test_string_sort():
    assert ids(sort_rows(ROWS, "student_name", ASC, COLUMNS)) == [4, 2, 5, 3, 1]


@pytest.mark.parametrize("key", ["session_number", "date", "student_name", "type"])
def test_descending_is_exact_reverse(key):
    ascending = ids(sort_rows(ROWS, key, ASC, COLUMNS))
    descending = ids(sort_rows(ROWS, key, DESC, COLUMNS))
    assert descending == list(reversed(ascending))


def test_composite_column_orders_by_joined_labels():
    rows = [
        {"id": 1, "is_medical": "Yes", "is_psychological": "Yes"},
        {"id": 2, "is_medical": "No", "is_psychological": "Yes"},
        {"id": 3, "is_medical": True, "is_psychological": False},
        {"id": 4},
    ]
    # unlabelled rows first, then "Medical" < "Medical, Psychological" < "Psychological"
    assert ids(sort_rows(rows, "type", ASC, COLUMNS)) == [4, 3, 1, 2]


def test_no_key_keeps_order():
    assert ids(sort_rows(ROWS, None)) == [1, 2, 3, 4, 5]


def test_unknown_direction():
    with pytest.raises(ValueError):
        sort_rows(ROWS, "date", "sideways", COLUMNS)


def test_parse_instant():
    assert parse_instant("2024-01-15") == datetime.datetime(2024, 1, 15)
    assert parse_instant("2024-01-15T08:30:00+08:00") == datetime.datetime(2024, 1, 15, 0, 30)
    assert parse_instant("0000-00-00 00:00:00") is None
    assert parse_instant("not a date") is None
    assert parse_instant("2024-13-45") is None
    assert parse_instant(datetime.date(2024, 2, 1)) == datetime.datetime(2024, 2, 1)


def test_parse_number():
    assert parse_number("12") == Decimal("12")
    assert parse_number(" 3.5 ") == Decimal("3.5")
    assert parse_number("abc") is None
    assert parse_number("NaN") is None
    assert parse_number(True) is None
    assert parse_number(None) is None


class TestSortState:
    def test_click_same_key_toggles(self):
        state = SortState().click("date")
        assert state == SortState("date", ASC)
        assert state.click("date") == SortState("date", DESC)
        assert state.click("date").click("date") == SortState("date", ASC)

    def test_click_new_key_resets_to_ascending(self):
        state = SortState("date", DESC).click("session_number")
        assert state == SortState("session_number", ASC)

    def test_click_twice_reverses_rows(self):
        state = SortState().click("session_number")
        first = ids(state.apply(ROWS, COLUMNS))
        second = ids(state.click("session_number").apply(ROWS, COLUMNS))
        assert second == list(reversed(first))
