import pytest

from records.context import ViewContext
from records.exceptions import TransportError
from records.listing import (
    AGGREGATED,
    FLAT,
    STUDENT,
    ListingSurface,
    aggregate_by_student,
    mode_for,
)
from records.offices import ADMINISTRATOR, COUNSELING, GCO, MEDICAL, OPD, UNKNOWN
from records.permissions import NO_ACCESS, VIEW_ONLY


def flat_row(record_id, student_id, **fields):
    row = {"record_id": record_id, "student_id": student_id, "student_name": f"Student {student_id}",
           "session_number": record_id, "status": "Done"}
    row.update(fields)
    return row


class FakeClient:
    def __init__(self, records=(), students=(), fail=False):
        self.records = list(records)
        self.students = list(students)
        self.fail = fail
        self.calls = []

    def fetch_records(self, record_type, record_filter=None):
        self.calls.append(("fetch_records", record_type, record_filter))
        if self.fail:
            raise TransportError("connection refused", "fetch records")
        return {"success": True, "records": self.records}

    def search_students(self, record_type, query, record_filter=None):
        self.calls.append(("search_students", record_type, query))
        if self.fail:
            raise TransportError("connection refused", "search students")
        return {"success": True, "students": self.students}


@pytest.fixture
def surface():
    return ListingSurface(ViewContext(GCO), COUNSELING)


FIVE_FLAT = [flat_row(i, f"S{i}") for i in range(1, 6)]
TWO_STUDENTS = [
    {"student_id": "S1", "student_name": "Ana", "record_count": 3, "latest_status": "Done"},
    {"student_id": "S2", "student_name": "Ben", "record_count": 1, "latest_status": "Scheduled"},
]


def test_mode_for():
    assert mode_for("") == FLAT
    assert mode_for("   ") == FLAT
    assert mode_for(None) == FLAT
    assert mode_for("ana") == AGGREGATED


def test_switching_modes_never_mixes_rows(surface):
    client = FakeClient(records=FIVE_FLAT, students=TWO_STUDENTS)

    surface.load(client)
    assert len(surface.rows) == 5
    assert surface.mode == FLAT

    surface.load(client, "ana")
    assert surface.mode == AGGREGATED
    assert len(surface.rows) == 2
    assert surface.row_count(FLAT) == 0

    surface.load(client, "")
    assert len(surface.rows) == 5
    assert surface.row_count(AGGREGATED) == 0


def test_rows_hidden_while_new_query_pending(surface):
    surface.resolve(surface.begin(), {"success": True, "records": FIVE_FLAT})

    surface.begin("ana")
    assert surface.rows == []


def test_stale_fetch_is_discarded(surface):
    first = surface.begin("an")
    second = surface.begin("ana")

    assert not surface.resolve(first, {"success": True, "students": TWO_STUDENTS * 3})
    assert surface.rows == []

    assert surface.resolve(second, {"success": True, "students": TWO_STUDENTS})
    assert len(surface.rows) == 2
    assert surface.result_query == "ana"


def test_results_after_close_are_discarded(surface):
    ticket = surface.begin()
    surface.close()
    assert not surface.resolve(ticket, {"success": True, "records": FIVE_FLAT})
    assert surface.row_count(FLAT) == 0


def test_failed_refresh_keeps_rows(surface):
    surface.load(FakeClient(records=FIVE_FLAT))
    surface.refresh(FakeClient(fail=True))

    assert len(surface.rows) == 5
    assert "connection refused" in surface.error
    assert not surface.loading


def test_unsuccessful_response_keeps_rows(surface):
    surface.load(FakeClient(records=FIVE_FLAT))
    ticket = surface.begin()
    surface.resolve(ticket, {"success": False, "detail": "Server error"})

    assert len(surface.rows) == 5
    assert surface.error == "Server error"


def test_medical_filter_is_forwarded():
    client = FakeClient()
    ListingSurface(ViewContext(OPD), MEDICAL, medical_filter="PSYCHOLOGICAL").load(client)
    assert client.calls == [("fetch_records", MEDICAL, "PSYCHOLOGICAL")]


def test_rows_are_normalized_and_sorted(surface):
    surface.load(FakeClient(records=[
        {"cor_record_id": 1, "cor_session_number": "10", "cor_student_id": "S1"},
        {"cor_record_id": 2, "cor_session_number": "9", "cor_student_id": "S1"},
    ]))
    surface.click_column("session_number")
    assert [row["session_number"] for row in surface.rows] == ["9", "10"]

    surface.click_column("session_number")
    assert [row["session_number"] for row in surface.rows] == ["10", "9"]


class TestSelect:
    def test_flat_row(self):
        surface = ListingSurface(ViewContext(OPD), COUNSELING)
        selection = surface.select(flat_row(3, "S3"))

        assert selection.record_type == COUNSELING
        assert selection.capabilities == VIEW_ONLY
        assert not selection.is_fallback

    def test_unknown_row_falls_back(self):
        surface = ListingSurface(ViewContext(OPD), COUNSELING)
        selection = surface.select({"student_id": "S3"})

        assert selection.record_type == UNKNOWN
        assert selection.capabilities == NO_ACCESS
        assert selection.is_fallback

    def test_aggregated_row_selects_student(self, surface):
        surface.load(FakeClient(students=TWO_STUDENTS), "ana")
        selection = surface.select(surface.rows[0])

        assert selection.record_type == STUDENT
        assert selection.record["student_id"] == "S1"

    def test_administrator_selection_is_view_only(self):
        surface = ListingSurface(ViewContext(ADMINISTRATOR, GCO), COUNSELING)
        assert not surface.select(flat_row(1, "S1")).capabilities.can_edit


class TestAggregateByStudent:
    def test_counts_and_latest_status(self):
        rows = [
            flat_row(1, "S1", status="Done", date="2024-01-10"),
            flat_row(2, "S1", status="Scheduled", date="2024-02-01"),
            flat_row(3, "S2", status="To Schedule", date=None, created_at="2024-03-05T10:00:00Z"),
        ]
        students = {row["student_id"]: row for row in aggregate_by_student(rows, COUNSELING)}

        assert students["S1"]["record_count"] == 2
        assert students["S1"]["latest_status"] == "Scheduled"
        assert students["S1"]["latest_record_id"] == 2
        assert students["S2"]["latest_status"] == "To Schedule"
        assert students["S2"]["latest_date"] == "2024-03-05T10:00:00"

    def test_ties_go_to_highest_record_id(self):
        rows = [
            flat_row(7, "S1", status="Done", date="2024-01-10"),
            flat_row(9, "S1", status="Scheduled", date="2024-01-10"),
            flat_row(8, "S1", status="To Schedule", date="2024-01-10"),
        ]
        assert aggregate_by_student(rows, COUNSELING)[0]["latest_status"] == "Scheduled"

    def test_missing_dates_fall_back_to_record_id(self):
        rows = [flat_row(4, "S1", status="Done"), flat_row(5, "S1", status="Scheduled")]
        assert aggregate_by_student(rows, COUNSELING)[0]["latest_status"] == "Scheduled"

    def test_medical_type_flags(self):
        rows = [
            {"record_id": 1, "student_id": "S1", "is_medical": "Yes", "is_psychological": "No"},
            {"record_id": 2, "student_id": "S1", "is_medical": "No", "is_psychological": "Yes"},
            {"record_id": 3, "student_id": "S2", "is_medical": "Yes", "is_psychological": "No"},
        ]
        students = {row["student_id"]: row for row in aggregate_by_student(rows, MEDICAL)}

        assert students["S1"]["has_medical"] and students["S1"]["has_psychological"]
        assert students["S2"]["has_medical"] and not students["S2"]["has_psychological"]
