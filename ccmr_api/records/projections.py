from django.db.models import Q
from rest_framework.exceptions import PermissionDenied, ValidationError

from .listing import AGGREGATED, FLAT, aggregate_by_student, columns_for
from .models import RECORD_MODELS
from .offices import (
    COUNSELING,
    MEDICAL,
    MEDICAL_FILTER_ALL,
    MEDICAL_FILTER_BOTH,
    MEDICAL_FILTER_MEDICAL,
    MEDICAL_FILTER_PSYCHOLOGICAL,
    MEDICAL_FILTERS,
    ReferralState,
)
from .permissions import NONE, REFERRED
from .serializers import ROW_SERIALIZERS
from .sorting import ASC, DESC, sort_rows
from .validation import parse_yes_no


def _referred_only(queryset, record_type):
    if record_type == COUNSELING:
        return queryset.filter(Q(source_case__isnull=False) | Q(source_medical__isnull=False))
    return queryset.exclude(referral_state=ReferralState.NONE)


def scoped_queryset(context, record_type):
    """Records of ``record_type`` visible to the context's effective office."""
    scope = context.scope(record_type)
    if scope == NONE:
        raise PermissionDenied(f"{context.effective_office} cannot view {record_type} records.")

    queryset = (
        RECORD_MODELS[record_type].objects
        .select_related('student')
        .prefetch_related('attachments', 'edit_history')
        .order_by('-pk')
    )
    if scope == REFERRED:
        if record_type == COUNSELING:
            # the infirmary follows counseling flagged with a psychological condition
            queryset = queryset.filter(psychological_condition=True)
        else:
            queryset = queryset.exclude(referral_state=ReferralState.NONE)
    return queryset


def apply_filters(queryset, record_type, params):
    if params.get('referredOnly') and parse_yes_no(params.get('referredOnly'), 'referredOnly'):
        queryset = _referred_only(queryset, record_type)

    record_filter = (params.get('filter') or MEDICAL_FILTER_ALL).upper()
    if record_type != MEDICAL or record_filter == MEDICAL_FILTER_ALL:
        return queryset
    if record_filter not in MEDICAL_FILTERS:
        raise ValidationError({'filter': f'Expected one of {", ".join(MEDICAL_FILTERS)}.'})
    if record_filter == MEDICAL_FILTER_BOTH:
        return queryset.filter(is_medical=True, is_psychological=True)
    if record_filter == MEDICAL_FILTER_MEDICAL:
        return queryset.filter(is_medical=True, is_psychological=False)
    if record_filter == MEDICAL_FILTER_PSYCHOLOGICAL:
        return queryset.filter(is_medical=False, is_psychological=True)
    return queryset


def search(queryset, query):
    query = (query or '').strip()
    if not query:
        return queryset
    return queryset.filter(
        Q(student__student_id__icontains=query)
        | Q(student__name__icontains=query)
        | Q(student__strand__icontains=query)
    )


def flat_rows(queryset, record_type, request=None):
    serializer = ROW_SERIALIZERS[record_type](queryset, many=True, context={'request': request})
    return [dict(row) for row in serializer.data]


def sort_params(params):
    key = params.get('sort') or None
    direction = (params.get('direction') or ASC).lower()
    if direction not in (ASC, DESC):
        raise ValidationError({'direction': 'Expected "asc" or "desc".'})
    return key, direction


def project(context, record_type, params, mode, request=None):
    """Build the rows of one projection, scoped, filtered, searched and sorted."""
    queryset = scoped_queryset(context, record_type)
    queryset = apply_filters(queryset, record_type, params)
    queryset = search(queryset, params.get('query'))
    rows = flat_rows(queryset, record_type, request)
    if mode == AGGREGATED:
        rows = aggregate_by_student(rows, record_type)

    key, direction = sort_params(params)
    return sort_rows(rows, key, direction, columns_for(mode, record_type))


def project_flat(context, record_type, params, request=None):
    return project(context, record_type, params, FLAT, request)


def project_aggregated(context, record_type, params, request=None):
    return project(context, record_type, params, AGGREGATED, request)
