"""
Permission matrix for (acting office, record type).

Every view/edit gate in the API and in the client goes through
``capabilities``; the table below is the single source of truth.
"""
from collections import namedtuple

from .offices import (
    ADMINISTRATOR,
    CASE,
    COUNSELING,
    GCO,
    INF,
    MEDICAL,
    OPD,
    OWNING_OFFICE,
    RECORD_TYPES,
    REFERABLE_TYPES,
)

Capabilities = namedtuple("Capabilities", ["can_view", "can_edit", "can_refer"])

NO_ACCESS = Capabilities(False, False, False)
VIEW_ONLY = Capabilities(True, False, False)
VIEW_EDIT = Capabilities(True, True, False)
VIEW_EDIT_REFER = Capabilities(True, True, True)

# Data scopes
ALL = "all"
REFERRED = "referred"
NONE = "none"

MATRIX = {
    OPD: {
        CASE: VIEW_EDIT_REFER,
        COUNSELING: VIEW_ONLY,
        MEDICAL: VIEW_EDIT,
    },
    GCO: {
        CASE: VIEW_EDIT,
        COUNSELING: VIEW_EDIT,
        MEDICAL: VIEW_ONLY,
    },
    INF: {
        CASE: VIEW_ONLY,
        COUNSELING: VIEW_ONLY,
        MEDICAL: VIEW_EDIT_REFER,
    },
    ADMINISTRATOR: {
        CASE: VIEW_ONLY,
        COUNSELING: VIEW_ONLY,
        MEDICAL: VIEW_ONLY,
    },
}

SCOPES = {
    OPD: {CASE: ALL, COUNSELING: ALL, MEDICAL: ALL},
    GCO: {CASE: REFERRED, COUNSELING: ALL, MEDICAL: REFERRED},
    # counseling records flagged with a psychological condition
    INF: {CASE: REFERRED, COUNSELING: REFERRED, MEDICAL: ALL},
    ADMINISTRATOR: {CASE: ALL, COUNSELING: ALL, MEDICAL: ALL},
}


def capabilities(acting_office, record_type, impersonating=False):
    """
    Capabilities of ``acting_office`` on ``record_type``.

    ``acting_office`` is the real office of the user, never the impersonated
    one, so an Administrator stays view-only whatever office it is viewing as.
    ``impersonating`` is accepted for callers that track it but cannot widen
    the result.
    """
    if acting_office == ADMINISTRATOR:
        return VIEW_ONLY if record_type in RECORD_TYPES else NO_ACCESS
    if impersonating:
        # only administrators impersonate; anything else is a forged context
        return NO_ACCESS
    return MATRIX.get(acting_office, {}).get(record_type, NO_ACCESS)


def visibility_scope(effective_office, record_type):
    return SCOPES.get(effective_office, {}).get(record_type, NONE)


def can_create(acting_office, record_type):
    return acting_office != ADMINISTRATOR and OWNING_OFFICE.get(record_type) == acting_office


def can_refer(acting_office, record_type):
    return record_type in REFERABLE_TYPES and capabilities(acting_office, record_type).can_refer


def can_confirm_referrals(acting_office):
    return acting_office == GCO


def can_view_referral_queue(effective_office):
    return effective_office in (GCO, ADMINISTRATOR)
