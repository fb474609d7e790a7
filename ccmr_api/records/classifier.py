"""
Record type classification and alias normalization.

Record payloads reach us from several sources (legacy office-prefixed columns,
camelCase form fields, our own canonical rows), so the same attribute can show
up under different names. ``classify`` decides which record type a payload is
and ``normalize`` rewrites it onto the canonical snake_case keys that the rest
of the package works with.
"""
import logging
from collections.abc import Mapping

from .offices import CASE, COUNSELING, MEDICAL, UNKNOWN

logger = logging.getLogger(__name__)

# canonical name -> every name the attribute is known to arrive under
FIELD_ALIASES = {
    "case_no": ("case_no", "caseNo", "caseId", "cr_case_id"),
    "record_id": ("record_id", "recordId", "mr_medical_id", "cor_record_id"),
    "student_id": ("student_id", "studentId", "id", "mr_student_id", "cr_student_id", "cor_student_id", "sd_id_number"),
    "student_name": ("student_name", "studentName", "name", "mr_student_name", "cr_student_name", "cor_student_name", "sd_student_name"),
    "strand": ("strand", "mr_student_strand", "cr_student_strand", "cor_student_strand", "sd_strand"),
    "grade_level": ("grade_level", "gradeLevel", "mr_grade_level", "cr_grade_level", "cor_grade_level", "sd_grade_level"),
    "section": ("section", "mr_section", "cr_section", "cor_section", "sd_section"),
    "school_year_semester": ("school_year_semester", "schoolYearSemester", "sd_school_year_semester"),
    "status": ("status", "cr_status", "mr_status", "cor_status"),
    "date": ("date", "cr_date", "mr_date", "cor_date"),
    "remarks": ("remarks", "additionalRemarks", "cr_remarks", "mr_additional_remarks", "cor_remarks"),
    "attachments": ("attachments", "files"),
    "referral_state": ("referral_state", "referralState"),
    "referred": ("referred", "referredToGCO", "referToGCO", "cr_referred", "mr_referred"),
    # case
    "violation_level": ("violation_level", "violationLevel", "cr_violation_level"),
    "description": ("description", "generalDescription", "cr_description"),
    # counseling
    "session_number": ("session_number", "sessionNumber", "cr_session_number", "cor_session_number"),
    "time": ("time", "cr_time", "cor_time"),
    "concern": ("concern", "generalConcern", "cr_concern", "cor_concern"),
    "psychological_condition": ("psychological_condition", "psychologicalCondition", "cr_psychological_condition", "cor_psychological_condition"),
    # medical
    "subject": ("subject", "mr_subject"),
    "medical_details": ("medical_details", "medicalDetails", "mr_medical_details"),
    "is_medical": ("is_medical", "isMedical", "mr_is_medical"),
    "is_psychological": ("is_psychological", "isPsychological", "mr_is_psychological"),
}

# Checked in order; the first group with a populated alias wins.
DISCRIMINANTS = (
    (COUNSELING, ("session_number",)),
    (MEDICAL, ("subject", "medical_details")),
    (CASE, ("violation_level", "case_no")),
)


def _populated(value):
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def lookup(record, field, default=None):
    """Return the first populated alias of ``field`` in ``record``."""
    for alias in FIELD_ALIASES.get(field, (field,)):
        value = record.get(alias)
        if _populated(value):
            return value
    return default


def has_field(record, field):
    return any(_populated(record.get(alias)) for alias in FIELD_ALIASES[field])


def classify(record):
    if not isinstance(record, Mapping):
        logger.warning("Cannot classify %s payload", type(record).__name__)
        return UNKNOWN

    for record_type, fields in DISCRIMINANTS:
        if any(has_field(record, field) for field in fields):
            return record_type

    logger.warning("Unclassifiable record payload with keys %s", sorted(map(str, record.keys())))
    return UNKNOWN


def normalize(record, record_type=None):
    """
    Map every known alias onto its canonical key.

    Keys that are not aliases of anything are carried over unchanged, so
    projection-specific columns (``record_count``, ``latest_status``...) survive.
    The resolved type is stored under ``record_type``. For medical and case
    records the canonical identifier is duplicated under ``record_id`` /
    ``case_no`` as appropriate so rows can be keyed uniformly.
    """
    if not isinstance(record, Mapping):
        return {"record_type": UNKNOWN}

    if record_type is None:
        record_type = classify(record)

    known_aliases = set()
    canonical = {}
    for field, aliases in FIELD_ALIASES.items():
        known_aliases.update(aliases)
        value = lookup(record, field)
        if value is None:
            # keep explicit empties (e.g. blank remarks) under the canonical name
            for alias in aliases:
                if alias in record:
                    value = record[alias]
                    break
            else:
                continue
        canonical[field] = value

    for key, value in record.items():
        if key not in known_aliases:
            canonical.setdefault(key, value)

    canonical["record_type"] = record_type
    if record_type == CASE and "record_id" not in canonical and "case_no" in canonical:
        canonical["record_id"] = canonical["case_no"]
    return canonical
