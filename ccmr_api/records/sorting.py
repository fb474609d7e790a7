"""
Column-aware row sorting shared by the flat and the per-student listings.

Nulls (missing keys, ``None``, unparseable dates or numbers) are the smallest
value: first when ascending, last when descending. Descending is always the
exact reverse of ascending, ties included.
"""
import datetime
import locale
import math
import re
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_date, parse_datetime

ASC = "asc"
DESC = "desc"

STRING = "string"
NUMERIC = "numeric"
DATE = "date"
COMPOSITE = "composite"

_PLACEHOLDER_DATE = re.compile(r"^[0\s\-/:.T]+$")


def parse_instant(value):
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime.datetime):
        instant = value
    elif isinstance(value, datetime.date):
        instant = datetime.datetime.combine(value, datetime.time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text or _PLACEHOLDER_DATE.match(text):
            return None
        try:
            instant = parse_datetime(text)
            if instant is None:
                day = parse_date(text)
                if day is None:
                    return None
                instant = datetime.datetime.combine(day, datetime.time.min)
        except ValueError:
            return None
    else:
        return None

    if instant.tzinfo is not None:
        instant = instant.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return instant


def parse_number(value):
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = value
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    try:
        if math.isnan(number) or math.isinf(number):
            return None
    except (TypeError, ValueError):
        return None
    return Decimal(str(number)) if isinstance(number, float) else Decimal(number)


def _truthy(value):
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1")
    return bool(value)


class Column:
    """
    How one column compares.

    ``labels`` is only used by composite columns: it maps each constituent
    boolean field of the row to the label it contributes.
    """

    def __init__(self, key, kind=STRING, labels=None):
        self.key = key
        self.kind = kind
        self.labels = labels or {}

    def __repr__(self):
        return f"Column({self.key!r}, {self.kind!r})"

    def sort_value(self, row):
        if self.kind == COMPOSITE:
            names = sorted(label for field, label in self.labels.items() if _truthy(row.get(field)))
            return ", ".join(names) if names else None

        value = row.get(self.key)
        if self.kind == DATE:
            return parse_instant(value)
        if self.kind == NUMERIC:
            return parse_number(value)
        if value is None:
            return None
        return locale.strxfrm(value if isinstance(value, str) else str(value))


def sort_rows(rows, key, direction=ASC, columns=None):
    if not key:
        return list(rows)
    if direction not in (ASC, DESC):
        raise ValueError(f"Unknown sort direction {direction!r}")

    column = (columns or {}).get(key) or Column(key)
    nulls = []
    valued = []
    for row in rows:
        value = column.sort_value(row)
        if value is None:
            nulls.append(row)
        else:
            valued.append((value, row))

    valued.sort(key=lambda pair: pair[0])
    ordered = nulls + [row for _, row in valued]
    if direction == DESC:
        ordered.reverse()
    return ordered


class SortState:
    """Header click state of one table surface."""

    def __init__(self, key=None, direction=ASC):
        self.key = key
        self.direction = direction

    def __eq__(self, other):
        return isinstance(other, SortState) and (self.key, self.direction) == (other.key, other.direction)

    def __repr__(self):
        return f"SortState({self.key!r}, {self.direction!r})"

    def click(self, key):
        if key == self.key:
            return SortState(key, DESC if self.direction == ASC else ASC)
        return SortState(key, ASC)

    def apply(self, rows, columns=None):
        return sort_rows(rows, self.key, self.direction, columns)
