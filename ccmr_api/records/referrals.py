"""
Referral lifecycle: None -> Pending -> Confirmed.

A referral lives on the source Case or Medical record and always targets the
Guidance Counseling Office. Confirming it creates the counseling record; there
is no way back from Confirmed.
"""
import logging

from django.db import transaction
from django.db.models import Max
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied

from .exceptions import ReferralConflict, ViewOnly
from .models import CaseRecord, CounselingRecord, MedicalRecord, Notification
from .offices import (
    CASE,
    GCO,
    MEDICAL,
    OWNING_OFFICE,
    REFERABLE_TYPES,
    REFERRAL_QUEUE_TYPES,
    TO_SCHEDULE,
    ReferralState,
)

logger = logging.getLogger(__name__)

SOURCE_MODELS = {
    CASE: CaseRecord,
    MEDICAL: MedicalRecord,
}


def check_referral_flag(record, flag, context):
    """Raise when ``context`` may not start the referral ``flag`` asks for; return whether one would start."""
    if not flag or getattr(record, 'referral_state', None) != ReferralState.NONE:
        return False
    if not context.capabilities(record.record_type).can_refer:
        if context.is_administrator:
            raise ViewOnly()
        raise PermissionDenied(f"Only {OWNING_OFFICE[record.record_type]} can refer this record.")
    return True


def apply_referral_flag(record, flag, context):
    """
    Move a saved source record from None to Pending when ``flag`` is set.

    Re-saving an already referred record is a no-op, and an unset flag never
    moves a referral back. Raises ``PermissionDenied`` when an office other
    than the owner tries to start a referral. Returns whether the state changed.
    """
    if not check_referral_flag(record, flag, context):
        return False

    record.referral_state = ReferralState.PENDING
    record.referred_at = timezone.now()
    record.save(update_fields=['referral_state', 'referred_at'])

    Notification.objects.create(
        receiver=GCO,
        sender=context.acting_office,
        message=f"New referral from {context.acting_office} for {record.student.name}",
        record_type=REFERRAL_QUEUE_TYPES[record.record_type],
        record_id=record.pk,
    )
    logger.info("%s %s referred to %s", record.record_type, record.pk, GCO)
    return True


def next_session_number(student):
    current = student.counseling_records.aggregate(highest=Max('session_number'))['highest']
    return (current or 0) + 1


def _seed_concern(record):
    if record.record_type == CASE:
        return f"Referred by OPD (case #{record.case_no}, {record.violation_level}): {record.description}"
    return f"Referred by INF (medical record #{record.record_id}): {record.subject}"


def confirm_referral(record_type, record_id, context):
    """Confirm a pending referral exactly once and return the new counseling record."""
    if record_type not in REFERABLE_TYPES:
        raise NotFound("Unknown referral source.")
    if not context.can_confirm_referrals:
        if context.is_administrator:
            raise ViewOnly()
        raise PermissionDenied("Only the Guidance Counseling Office can confirm referrals.")

    model = SOURCE_MODELS[record_type]
    with transaction.atomic():
        try:
            record = model.objects.select_for_update().select_related('student').get(pk=record_id)
        except model.DoesNotExist:
            raise NotFound(f"{record_type} record {record_id} not found.")

        if record.referral_state == ReferralState.CONFIRMED:
            raise ReferralConflict("Referral has already been confirmed.")
        if record.referral_state != ReferralState.PENDING:
            raise ReferralConflict("Record has not been referred.")

        counseling = CounselingRecord.objects.create(
            student=record.student,
            session_number=next_session_number(record.student),
            status=TO_SCHEDULE,
            concern=_seed_concern(record),
            psychological_condition=record_type == MEDICAL and record.is_psychological,
            source_case=record if record_type == CASE else None,
            source_medical=record if record_type == MEDICAL else None,
        )

        record.referral_state = ReferralState.CONFIRMED
        record.referral_confirmed_at = timezone.now()
        record.save(update_fields=['referral_state', 'referral_confirmed_at'])

        Notification.objects.create(
            receiver=OWNING_OFFICE[record_type],
            sender=GCO,
            message=f"Referral for {record.student.name} confirmed as counseling record #{counseling.record_id}",
            record_type=REFERRAL_QUEUE_TYPES[record_type],
            record_id=record.pk,
        )

    logger.info("Confirmed %s %s referral as counseling record %s", record_type, record_id, counseling.record_id)
    return counseling


def pending_referrals():
    queue = []
    for record_type, model in SOURCE_MODELS.items():
        pending = model.objects.filter(referral_state=ReferralState.PENDING).select_related('student')
        for record in pending:
            queue.append({
                'record_id': record.pk,
                'record_type': REFERRAL_QUEUE_TYPES[record_type],
                'sender': OWNING_OFFICE[record_type],
                'studentName': record.student.name,
                'student_id': record.student.student_id,
                'referred_at': record.referred_at,
            })
    queue.sort(key=lambda item: (item['referred_at'] is None, item['referred_at'] or timezone.now(), item['record_id']))
    return queue
