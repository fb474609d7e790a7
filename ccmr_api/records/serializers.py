from rest_framework import serializers
from rest_framework.exceptions import ValidationError
from rest_framework_simplejwt.tokens import RefreshToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer

from .models import Attachment, CaseRecord, CounselingRecord, MedicalRecord, Notification, RecordEdit
from .offices import (
    CASE,
    CASE_STATUSES,
    COUNSELING,
    COUNSELING_STATUSES,
    MEDICAL,
    MEDICAL_STATUSES,
    OFFICES,
    TO_SCHEDULE,
    VIOLATION_LEVELS,
    ReferralState,
)
from .validation import parse_yes_no, yes_no


class OfficeTokenRefreshSerializer(TokenRefreshSerializer):
    def validate(self, attrs):
        refresh_token = attrs.get("refresh")
        if not refresh_token:
            raise ValidationError({"refresh": "Refresh token is required."})

        try:
            refresh = RefreshToken(refresh_token)
            access = refresh.access_token
            for claim in ("office", "view_as", "name"):
                if refresh.get(claim) is not None:
                    access[claim] = refresh.get(claim)
            return {"refresh": str(refresh), "access": str(access)}
        except TokenError:
            raise ValidationError({"refresh": "Invalid refresh token."})


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class SetPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate(self, attrs):
        if attrs["current_password"] == attrs["new_password"]:
            raise ValidationError({"new_password": "New password must be different from the current password."})
        return attrs


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class ViewAsSerializer(serializers.Serializer):
    office = serializers.ChoiceField(choices=OFFICES)


class YesNoField(serializers.Field):
    default_error_messages = {
        'invalid': 'Expected "Yes" or "No".',
    }

    def to_internal_value(self, data):
        try:
            return parse_yes_no(data, self.field_name)
        except ValidationError:
            self.fail('invalid')

    def to_representation(self, value):
        return yes_no(value)


# Write payloads. Field names are the canonical ones produced by classifier.normalize.

class RecordWriteSerializer(serializers.Serializer):
    student_id = serializers.CharField(max_length=20)
    student_name = serializers.CharField(max_length=150)
    strand = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    grade_level = serializers.CharField(max_length=10, required=False, allow_blank=True, default='')
    section = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    school_year_semester = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
    date = serializers.DateField(required=False, allow_null=True, default=None)

    blank_as_null = ('date',)

    def to_internal_value(self, data):
        cleaned = dict(data.items()) if hasattr(data, 'items') else data
        if isinstance(cleaned, dict):
            for field in self.blank_as_null:
                if isinstance(cleaned.get(field), str) and not cleaned[field].strip():
                    cleaned[field] = None
            for key, value in list(cleaned.items()):
                if isinstance(value, (int, float)) and not isinstance(value, bool) and key in self.fields:
                    if isinstance(self.fields[key], serializers.CharField):
                        cleaned[key] = str(value)
        return super().to_internal_value(cleaned)


class CaseRecordSerializer(RecordWriteSerializer):
    violation_level = serializers.ChoiceField(choices=VIOLATION_LEVELS)
    status = serializers.ChoiceField(choices=CASE_STATUSES)
    description = serializers.CharField()
    referred = YesNoField()


class CounselingRecordSerializer(RecordWriteSerializer):
    session_number = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=COUNSELING_STATUSES)
    time = serializers.TimeField(required=False, allow_null=True, default=None)
    concern = serializers.CharField()
    psychological_condition = YesNoField(required=False, default=False)

    blank_as_null = ('date', 'time')

    def validate(self, attrs):
        if attrs['status'] == TO_SCHEDULE:
            attrs['date'] = None
            attrs['time'] = None
            return attrs

        missing = {
            field: 'Required unless the status is To Schedule.'
            for field in ('date', 'time')
            if not attrs.get(field)
        }
        if missing:
            raise ValidationError(missing)
        return attrs


class MedicalRecordSerializer(RecordWriteSerializer):
    subject = serializers.CharField(max_length=200)
    status = serializers.ChoiceField(choices=MEDICAL_STATUSES)
    medical_details = serializers.CharField()
    is_medical = YesNoField()
    is_psychological = YesNoField()
    referred = YesNoField(required=False, default=False)

    def validate(self, attrs):
        if not attrs['is_medical'] and not attrs['is_psychological']:
            raise ValidationError('Record cannot be neither medical nor psychological.')
        return attrs


# Output rows, keyed by canonical names.

class AttachmentSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()

    class Meta:
        model = Attachment
        fields = ['filename', 'display_name', 'size', 'media_type', 'is_medical', 'is_psychological', 'uploaded_by', 'uploaded_at', 'url']

    def get_url(self, obj):
        return obj.file.url if obj.file else None


class RecordEditSerializer(serializers.ModelSerializer):
    class Meta:
        model = RecordEdit
        fields = ['edited_by', 'edited_at']


class RecordRowSerializer(serializers.ModelSerializer):
    record_type = serializers.SerializerMethodField()
    student_id = serializers.CharField(source='student.student_id', read_only=True)
    student_name = serializers.CharField(source='student.name', read_only=True)
    strand = serializers.CharField(source='student.strand', read_only=True)
    grade_level = serializers.CharField(source='student.grade_level', read_only=True)
    section = serializers.CharField(source='student.section', read_only=True)
    school_year_semester = serializers.CharField(source='student.school_year_semester', read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)
    edit_history = RecordEditSerializer(many=True, read_only=True)

    student_fields = ['record_type', 'record_id', 'student_id', 'student_name', 'strand', 'grade_level', 'section', 'school_year_semester']

    def get_record_type(self, obj):
        return obj.record_type


class CaseRecordRowSerializer(RecordRowSerializer):
    record_id = serializers.IntegerField(source='case_no', read_only=True)
    referred = serializers.SerializerMethodField()

    class Meta:
        model = CaseRecord
        fields = RecordRowSerializer.student_fields + [
            'case_no', 'violation_level', 'status', 'description', 'remarks', 'date',
            'referral_state', 'referred', 'referred_at', 'referral_confirmed_at',
            'created_at', 'updated_at', 'attachments', 'edit_history',
        ]

    def get_referred(self, obj):
        return yes_no(obj.referral_state != ReferralState.NONE)


class CounselingRecordRowSerializer(RecordRowSerializer):
    psychological_condition = YesNoField(read_only=True)
    source_case = serializers.PrimaryKeyRelatedField(read_only=True)
    source_medical = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = CounselingRecord
        fields = RecordRowSerializer.student_fields + [
            'session_number', 'status', 'date', 'time', 'concern', 'remarks',
            'psychological_condition', 'source_case', 'source_medical',
            'created_at', 'updated_at', 'attachments', 'edit_history',
        ]


class MedicalRecordRowSerializer(RecordRowSerializer):
    is_medical = YesNoField(read_only=True)
    is_psychological = YesNoField(read_only=True)
    referred = serializers.SerializerMethodField()

    class Meta:
        model = MedicalRecord
        fields = RecordRowSerializer.student_fields + [
            'subject', 'status', 'medical_details', 'remarks', 'is_medical', 'is_psychological', 'date',
            'referral_state', 'referred', 'referred_at', 'referral_confirmed_at',
            'created_at', 'updated_at', 'attachments', 'edit_history',
        ]

    def get_referred(self, obj):
        return yes_no(obj.referral_state != ReferralState.NONE)


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'receiver', 'sender', 'message', 'record_type', 'record_id', 'is_read', 'created_at']


WRITE_SERIALIZERS = {
    CASE: CaseRecordSerializer,
    COUNSELING: CounselingRecordSerializer,
    MEDICAL: MedicalRecordSerializer,
}

ROW_SERIALIZERS = {
    CASE: CaseRecordRowSerializer,
    COUNSELING: CounselingRecordRowSerializer,
    MEDICAL: MedicalRecordRowSerializer,
}
