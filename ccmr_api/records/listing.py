"""
Flat and per-student listings behind a single sortable table.

A listing surface shows either one row per record (flat mode, no search term)
or one row per student (aggregated mode, search term active). It only ever
holds the active mode's rows, and results of superseded or abandoned fetches
are dropped.
"""
import logging
from collections import OrderedDict

from .classifier import classify, normalize
from .exceptions import TransportError
from .offices import CASE, COUNSELING, MEDICAL, UNKNOWN
from .permissions import NO_ACCESS
from .sorting import COMPOSITE, DATE, NUMERIC, Column, SortState, parse_instant, parse_number

logger = logging.getLogger(__name__)

FLAT = "flat"
AGGREGATED = "aggregated"

# selection kind for per-student rows
STUDENT = "Student"

_COMMON_COLUMNS = [
    Column("record_id", NUMERIC),
    Column("grade_level", NUMERIC),
    Column("date", DATE),
    Column("created_at", DATE),
    Column("updated_at", DATE),
    Column("referred_at", DATE),
]

FLAT_COLUMNS = {
    CASE: _COMMON_COLUMNS + [Column("case_no", NUMERIC)],
    COUNSELING: _COMMON_COLUMNS + [Column("session_number", NUMERIC)],
    MEDICAL: _COMMON_COLUMNS + [
        Column("type", COMPOSITE, labels={"is_medical": "Medical", "is_psychological": "Psychological"}),
    ],
}
FLAT_COLUMNS = {record_type: {c.key: c for c in columns} for record_type, columns in FLAT_COLUMNS.items()}

AGGREGATED_COLUMNS = {c.key: c for c in [
    Column("grade_level", NUMERIC),
    Column("record_count", NUMERIC),
    Column("latest_date", DATE),
    Column("record_types", COMPOSITE, labels={"has_medical": "Medical", "has_psychological": "Psychological"}),
]}


def mode_for(search_term):
    return AGGREGATED if search_term and search_term.strip() else FLAT


def columns_for(mode, record_type):
    if mode == AGGREGATED:
        return AGGREGATED_COLUMNS
    return FLAT_COLUMNS.get(record_type, {})


def _recency(row):
    instant = parse_instant(row.get("date")) or parse_instant(row.get("created_at"))
    record_id = parse_number(row.get("record_id"))
    return (instant is not None, instant, record_id is not None, record_id)


def _is_yes(value):
    if isinstance(value, str):
        return value.strip().lower() == "yes"
    return bool(value)


def aggregate_by_student(rows, record_type):
    """
    Collapse canonical flat rows into one row per student.

    ``latest_status`` is the status of the most recently dated record (falling
    back to creation time); ties go to the highest record id.
    """
    students = OrderedDict()
    for row in rows:
        student_id = row.get("student_id")
        if student_id is None:
            continue
        group = students.setdefault(student_id, [])
        group.append(row)

    aggregated = []
    for student_id, group in students.items():
        latest = max(group, key=_recency)
        latest_instant = _recency(latest)[1]
        summary = {
            "student_id": student_id,
            "student_name": latest.get("student_name"),
            "strand": latest.get("strand"),
            "grade_level": latest.get("grade_level"),
            "section": latest.get("section"),
            "school_year_semester": latest.get("school_year_semester"),
            "record_type": record_type,
            "record_count": len(group),
            "latest_status": latest.get("status"),
            "latest_date": latest_instant.isoformat() if latest_instant else None,
            "latest_record_id": latest.get("record_id"),
        }
        if record_type == MEDICAL:
            summary["has_medical"] = any(_is_yes(row.get("is_medical")) for row in group)
            summary["has_psychological"] = any(_is_yes(row.get("is_psychological")) for row in group)
        aggregated.append(summary)
    return aggregated


class FetchTicket:
    __slots__ = ("generation", "mode", "query")

    def __init__(self, generation, mode, query):
        self.generation = generation
        self.mode = mode
        self.query = query

    def __repr__(self):
        return f"FetchTicket({self.generation}, {self.mode!r}, {self.query!r})"


class Selection:
    """A clicked row, classified, with what the viewer may do with it."""

    def __init__(self, record_type, record, capabilities):
        self.record_type = record_type
        self.record = record
        self.capabilities = capabilities

    @property
    def is_fallback(self):
        return self.record_type == UNKNOWN


class ListingSurface:
    def __init__(self, context, record_type, medical_filter=None):
        self.context = context
        self.record_type = record_type
        self.medical_filter = medical_filter
        self.mode = FLAT
        self.query = ""
        self.result_query = None
        self.sort = SortState()
        self.error = None
        self.closed = False
        self._rows = {FLAT: [], AGGREGATED: []}
        self._generation = 0
        self._pending = None

    @property
    def loading(self):
        return self._pending is not None

    @property
    def rows(self):
        if self._pending is not None and self._pending.query != self.result_query:
            return []
        return self.sort.apply(self._rows[self.mode], columns_for(self.mode, self.record_type))

    def row_count(self, mode):
        return len(self._rows[mode])

    def begin(self, search_term=""):
        query = (search_term or "").strip()
        mode = mode_for(query)
        if mode != self.mode:
            self._rows[self.mode] = []
            self.result_query = None
            self.mode = mode
        self.query = query
        self.error = None
        self._generation += 1
        self._pending = FetchTicket(self._generation, mode, query)
        return self._pending

    def _is_current(self, ticket):
        if self.closed or self._pending is None or ticket.generation != self._pending.generation:
            logger.debug("Discarding stale %s", ticket)
            return False
        return True

    def resolve(self, ticket, response):
        if not self._is_current(ticket):
            return False
        self._pending = None

        if not response or not response.get("success"):
            self.error = (response or {}).get("detail") or (response or {}).get("error") or "Request failed"
            return False

        if ticket.mode == FLAT:
            rows = [normalize(row, self.record_type) for row in response.get("records") or []]
        else:
            rows = [normalize(row, self.record_type) for row in response.get("students") or []]
        other = AGGREGATED if ticket.mode == FLAT else FLAT
        self._rows[other] = []
        self._rows[ticket.mode] = rows
        self.result_query = ticket.query
        return True

    def fail(self, ticket, error):
        if not self._is_current(ticket):
            return False
        self._pending = None
        self.error = str(error)
        logger.warning("Listing fetch failed: %s", error)
        return True

    def load(self, client, search_term=""):
        ticket = self.begin(search_term)
        try:
            if ticket.mode == FLAT:
                response = client.fetch_records(self.record_type, record_filter=self.medical_filter)
            else:
                response = client.search_students(self.record_type, ticket.query, record_filter=self.medical_filter)
        except TransportError as exc:
            self.fail(ticket, exc)
            return ticket
        self.resolve(ticket, response)
        return ticket

    def refresh(self, client):
        return self.load(client, self.query)

    def click_column(self, key):
        self.sort = self.sort.click(key)
        return self.sort

    def select(self, row):
        if self.mode == AGGREGATED:
            return Selection(STUDENT, dict(row), self.context.capabilities(self.record_type))

        record_type = classify(row)
        if record_type == UNKNOWN:
            logger.warning("Selected row could not be classified on %s listing", self.record_type)
            return Selection(UNKNOWN, dict(row) if hasattr(row, "items") else {}, NO_ACCESS)
        return Selection(record_type, normalize(row, record_type), self.context.capabilities(record_type))

    def close(self):
        self.closed = True
        self._pending = None
