import logging
import os

from django.contrib.auth.hashers import check_password, make_password
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Max
from rest_framework import status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken, TokenError
from rest_framework_simplejwt.views import TokenRefreshView

from .authentication import IsAdministrator, IsOfficeUser, issue_tokens, view_context
from .classifier import normalize
from .context import ViewContext
from .exceptions import ViewOnly
from .listing import mode_for
from .models import (
    RECORD_LINK_FIELD,
    RECORD_MODELS,
    Attachment,
    CounselingRecord,
    Notification,
    OfficeAccount,
    RecordEdit,
    Student,
)
from .offices import CASE, COUNSELING, record_type_for_queue
from .pdf_report import generate_listing_pdf
from .projections import project, project_aggregated, project_flat, scoped_queryset
from .referrals import (
    apply_referral_flag,
    check_referral_flag,
    confirm_referral,
    next_session_number,
    pending_referrals,
)
from .serializers import (
    ROW_SERIALIZERS,
    WRITE_SERIALIZERS,
    LoginSerializer,
    LogoutSerializer,
    NotificationSerializer,
    OfficeTokenRefreshSerializer,
    SetPasswordSerializer,
    ViewAsSerializer,
)
from .validation import parse_json_list, retained_filenames, validate_attachments

logger = logging.getLogger(__name__)

STUDENT_FIELDS = {
    'student_id': 'student_id',
    'student_name': 'name',
    'strand': 'strand',
    'grade_level': 'grade_level',
    'section': 'section',
    'school_year_semester': 'school_year_semester',
}


# Helpers

def _form_data(request):
    """Scalar fields of a JSON or multipart body, uploaded files left out."""
    return {key: request.data.get(key) for key in request.data.keys() if key not in request.FILES}


def _list_field(request, field):
    if hasattr(request.data, 'getlist'):
        return request.data.getlist(field)
    value = request.data.get(field)
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _get_record(context, record_type, record_id):
    record = scoped_queryset(context, record_type).filter(pk=record_id).first()
    if record is None:
        raise NotFound(f"{record_type} record {record_id} not found.")
    return record


def _check_session_number(student_id, session_number, record=None):
    others = CounselingRecord.objects.filter(student_id=student_id)
    if record is not None:
        others = others.exclude(pk=record.pk)
        if others.filter(session_number=session_number).exists():
            raise ValidationError({'session_number': f'Session {session_number} already exists for this student.'})
        return
    highest = others.aggregate(highest=Max('session_number'))['highest'] or 0
    if session_number <= highest:
        raise ValidationError({'session_number': f'Next session for this student is {highest + 1} or later.'})


def _save_student(validated):
    values = {column: validated[field] for field, column in STUDENT_FIELDS.items() if field != 'student_id'}
    student, _ = Student.objects.update_or_create(student_id=validated['student_id'], defaults=values)
    return student


def _record_fields(validated):
    return {
        field: value for field, value in validated.items()
        if field not in STUDENT_FIELDS and field != 'referred'
    }


def _store_attachments(record, record_type, uploads, classified, office, stored):
    """Save ``uploads`` against ``record``; every file written is appended to ``stored``."""
    for upload in uploads:
        is_medical, is_psychological = classified.get(upload.name, (None, None))
        attachment = Attachment(
            file=upload,
            display_name=upload.name,
            size=upload.size,
            media_type=upload.content_type,
            is_medical=is_medical,
            is_psychological=is_psychological,
            uploaded_by=office,
            **{RECORD_LINK_FIELD[record_type]: record},
        )
        attachment.save()
        stored.append(attachment.file.name)
        attachment.filename = os.path.basename(attachment.file.name)
        attachment.save(update_fields=['filename'])


def _discard_files(names):
    for name in names:
        default_storage.delete(name)


def _require_writer(context, record_type, creating=False):
    if context.read_only:
        raise ViewOnly()
    allowed = context.can_create(record_type) if creating else context.capabilities(record_type).can_edit
    if not allowed:
        raise PermissionDenied(f"{context.acting_office} cannot {'create' if creating else 'edit'} {record_type} records.")


def _validated_payload(request, record_type):
    serializer = WRITE_SERIALIZERS[record_type](data=normalize(_form_data(request), record_type))
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def _record_key(record_type):
    return 'caseId' if record_type == CASE else 'recordId'


# Auth Views

class LoginView(APIView):
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data['email']
        password = serializer.validated_data['password']

        account = OfficeAccount.objects.filter(email__iexact=email).first()
        if not account or not check_password(password, account.password):
            return Response(
                {'success': False, 'error': 'invalid-credentials', 'detail': 'Invalid email or password'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        # Temporary passwords have to be replaced before a session is issued
        if account.must_change_password:
            return Response({
                'success': False,
                'must_change_password': True,
                'detail': 'Your password is temporary. You must set a new password.'
            }, status=status.HTTP_200_OK)

        tokens = issue_tokens(ViewContext(account.office), name=account.name)
        logger.info("%s signed in as %s", account.email, account.office)
        return Response({
            'success': True,
            **tokens,
            'office': account.office,
            'name': account.name,
            'must_change_password': False,
        }, status=status.HTTP_200_OK)


class SetPasswordView(APIView):
    def post(self, request):
        serializer = SetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        account = OfficeAccount.objects.filter(email__iexact=serializer.validated_data['email']).first()
        if not account or not check_password(serializer.validated_data['current_password'], account.password):
            return Response(
                {'success': False, 'error': 'invalid-credentials', 'detail': 'Invalid email or password'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        account.password = make_password(serializer.validated_data['new_password'])
        account.must_change_password = False
        account.save(update_fields=['password', 'must_change_password'])
        return Response({'success': True, 'detail': 'Password changed successfully.'}, status=status.HTTP_200_OK)


class OfficeTokenRefreshView(TokenRefreshView):
    serializer_class = OfficeTokenRefreshSerializer


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            RefreshToken(serializer.validated_data['refresh']).blacklist()
        except TokenError:
            raise ValidationError({'refresh': 'Invalid refresh token.'})
        return Response({'success': True, 'detail': 'Logged out.'}, status=status.HTTP_200_OK)


# Session Views

class SessionView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request):
        context = view_context(request)
        return Response({'success': True, 'name': request.auth.get('name'), **context.describe()})


class ViewAsView(APIView):
    permission_classes = [IsAuthenticated, IsAdministrator]

    def post(self, request):
        serializer = ViewAsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        context = view_context(request).impersonate(serializer.validated_data['office'])
        return Response({
            'success': True,
            **issue_tokens(context, name=request.auth.get('name')),
            **context.describe(),
        })

    def delete(self, request):
        context = view_context(request).clear_impersonation()
        return Response({
            'success': True,
            **issue_tokens(context, name=request.auth.get('name')),
            **context.describe(),
        })


# Record Views

class RecordListView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request, record_type):
        context = view_context(request)
        records = project_flat(context, record_type, request.query_params, request)
        return Response({'success': True, 'records': records})

    def post(self, request, record_type):
        context = view_context(request)
        _require_writer(context, record_type, creating=True)

        validated = _validated_payload(request, record_type)
        uploads = request.FILES.getlist('attachments')
        classifications = parse_json_list(_list_field(request, 'fileClassifications'), 'fileClassifications')
        classified = validate_attachments(record_type, uploads, 0, classifications, context.acting_office)
        if record_type == COUNSELING:
            _check_session_number(validated['student_id'], validated['session_number'])

        stored = []
        try:
            with transaction.atomic():
                student = _save_student(validated)
                record = RECORD_MODELS[record_type].objects.create(student=student, **_record_fields(validated))
                _store_attachments(record, record_type, uploads, classified, context.acting_office, stored)
                apply_referral_flag(record, validated.get('referred'), context)
        except Exception:
            _discard_files(stored)
            raise

        logger.info("%s created %s record %s", context.acting_office, record_type, record.pk)
        return Response({'success': True, _record_key(record_type): record.pk}, status=status.HTTP_201_CREATED)


class RecordSearchView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request, record_type):
        context = view_context(request)
        records = project_flat(context, record_type, request.query_params, request)
        return Response({'success': True, 'records': records})


class RecordDetailView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request, record_type, record_id):
        context = view_context(request)
        record = _get_record(context, record_type, record_id)
        data = ROW_SERIALIZERS[record_type](record, context={'request': request}).data
        response = {
            'success': True,
            'record': data,
            'capabilities': context.capabilities(record_type)._asdict(),
        }
        if record_type == COUNSELING:
            response['next_session_number'] = next_session_number(record.student)
        return Response(response)

    def put(self, request, record_type, record_id):
        context = view_context(request)
        record = _get_record(context, record_type, record_id)
        _require_writer(context, record_type)

        validated = _validated_payload(request, record_type)
        uploads = request.FILES.getlist('attachments')
        classifications = parse_json_list(_list_field(request, 'fileClassifications'), 'fileClassifications')

        current = list(record.attachments.all())
        if 'existingAttachments' in request.data:
            kept = retained_filenames(request.data.get('existingAttachments'))
        else:
            kept = {attachment.filename for attachment in current}
        kept -= set(_list_field(request, 'filesToDelete'))
        removed = [attachment for attachment in current if attachment.filename not in kept]
        retained_count = len(current) - len(removed)

        classified = validate_attachments(record_type, uploads, retained_count, classifications, context.acting_office)
        if record_type == COUNSELING:
            _check_session_number(validated['student_id'], validated['session_number'], record)

        check_referral_flag(record, validated.get('referred'), context)

        stored = []
        try:
            with transaction.atomic():
                record.student = _save_student(validated)
                for field, value in _record_fields(validated).items():
                    setattr(record, field, value)
                record.save()

                for attachment in removed:
                    attachment.delete()
                # files only leave storage once the edit is committed
                removed_names = [attachment.file.name for attachment in removed]
                transaction.on_commit(lambda: _discard_files(removed_names))
                _store_attachments(record, record_type, uploads, classified, context.acting_office, stored)

                RecordEdit.objects.create(edited_by=context.acting_office, **{RECORD_LINK_FIELD[record_type]: record})
                apply_referral_flag(record, validated.get('referred'), context)
        except Exception:
            _discard_files(stored)
            raise

        logger.info("%s updated %s record %s", context.acting_office, record_type, record.pk)
        return Response({'success': True, _record_key(record_type): record.pk}, status=status.HTTP_200_OK)


class RecordExportView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request, record_type):
        context = view_context(request)
        mode = mode_for(request.query_params.get('query'))
        rows = project(context, record_type, request.query_params, mode, request)
        return generate_listing_pdf(
            rows,
            record_type,
            mode,
            office=context.effective_office,
            query=request.query_params.get('query') or None,
        )


class StudentRecordsView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request, record_type):
        context = view_context(request)
        students = project_aggregated(context, record_type, request.query_params, request)
        return Response({'success': True, 'students': students})


# Referral Views

class PendingReferralsView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request):
        context = view_context(request)
        if not context.can_view_referral_queue:
            raise PermissionDenied("Only the Guidance Counseling Office can view pending referrals.")
        return Response({
            'success': True,
            'referrals': pending_referrals(),
            'can_confirm': context.can_confirm_referrals,
        })


class ConfirmReferralView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def put(self, request, queue_type, record_id):
        record_type = record_type_for_queue(queue_type.replace('-', '_'))
        if record_type is None:
            raise NotFound(f"Unknown referral source {queue_type!r}.")

        counseling = confirm_referral(record_type, record_id, view_context(request))
        return Response({
            'success': True,
            'counselingRecordId': counseling.record_id,
            'sessionNumber': counseling.session_number,
        }, status=status.HTTP_200_OK)


# Notification Views

class NotificationListView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def get(self, request):
        context = view_context(request)
        notifications = Notification.objects.filter(receiver=context.effective_office)
        if request.query_params.get('unread') == 'true':
            notifications = notifications.filter(is_read=False)
        return Response({
            'success': True,
            'notifications': NotificationSerializer(notifications, many=True).data,
            'unread_count': notifications.filter(is_read=False).count(),
        })


class NotificationReadView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def put(self, request, notification_id):
        context = view_context(request)
        if context.read_only:
            raise ViewOnly()

        notification = Notification.objects.filter(pk=notification_id, receiver=context.acting_office).first()
        if notification is None:
            raise NotFound(f"Notification {notification_id} not found.")
        notification.is_read = True
        notification.save(update_fields=['is_read'])
        return Response({'success': True})


class NotificationMarkAllReadView(APIView):
    permission_classes = [IsAuthenticated, IsOfficeUser]

    def put(self, request):
        context = view_context(request)
        if context.read_only:
            raise ViewOnly()

        updated = Notification.objects.filter(receiver=context.acting_office, is_read=False).update(is_read=True)
        return Response({'success': True, 'updated': updated})
