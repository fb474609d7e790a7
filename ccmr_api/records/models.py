from django.db import models
from django.db.models import Q

from .offices import (
    CASE,
    CASE_STATUSES,
    COUNSELING,
    COUNSELING_STATUSES,
    MEDICAL,
    MEDICAL_STATUSES,
    OFFICE_CHOICES,
    VIOLATION_LEVELS,
    ReferralState,
)


def _choices(values):
    return [(value, value) for value in values]


class Student(models.Model):
    student_id = models.CharField(max_length=20, primary_key=True)
    name = models.CharField(max_length=150)
    strand = models.CharField(max_length=50, blank=True, default='')
    grade_level = models.CharField(max_length=10, blank=True, default='')
    section = models.CharField(max_length=50, blank=True, default='')
    school_year_semester = models.CharField(max_length=50, blank=True, default='')

    def __str__(self):
        return f"{self.student_id} {self.name}"


class OfficeAccount(models.Model):
    email = models.EmailField(unique=True)
    password = models.CharField(max_length=128)
    name = models.CharField(max_length=100)
    department = models.CharField(max_length=100, blank=True, default='')
    office = models.CharField(max_length=20, choices=OFFICE_CHOICES)
    must_change_password = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.email} ({self.office})"


class ReferableRecord(models.Model):
    referral_state = models.CharField(max_length=10, choices=ReferralState.CHOICES, default=ReferralState.NONE)
    referred_at = models.DateTimeField(null=True, blank=True)
    referral_confirmed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True


class CaseRecord(ReferableRecord):
    record_type = CASE

    case_no = models.AutoField(primary_key=True)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='case_records')
    violation_level = models.CharField(max_length=10, choices=_choices(VIOLATION_LEVELS))
    status = models.CharField(max_length=10, choices=_choices(CASE_STATUSES))
    description = models.TextField()
    remarks = models.TextField(blank=True, default='')
    date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def record_id(self):
        return self.case_no


class CounselingRecord(models.Model):
    record_type = COUNSELING

    record_id = models.AutoField(primary_key=True)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='counseling_records')
    session_number = models.PositiveIntegerField()
    status = models.CharField(max_length=15, choices=_choices(COUNSELING_STATUSES))
    date = models.DateField(null=True, blank=True)
    time = models.TimeField(null=True, blank=True)
    concern = models.TextField()
    remarks = models.TextField(blank=True, default='')
    psychological_condition = models.BooleanField(default=False)
    source_case = models.OneToOneField(
        CaseRecord, on_delete=models.SET_NULL, null=True, blank=True, related_name='counseling_record'
    )
    source_medical = models.OneToOneField(
        'MedicalRecord', on_delete=models.SET_NULL, null=True, blank=True, related_name='counseling_record'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['student', 'session_number'], name='unique_session_per_student'),
        ]


class MedicalRecord(ReferableRecord):
    record_type = MEDICAL

    record_id = models.AutoField(primary_key=True)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='medical_records')
    subject = models.CharField(max_length=200)
    status = models.CharField(max_length=15, choices=_choices(MEDICAL_STATUSES))
    medical_details = models.TextField()
    remarks = models.TextField(blank=True, default='')
    is_medical = models.BooleanField(default=False)
    is_psychological = models.BooleanField(default=False)
    date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(is_medical=True) | Q(is_psychological=True),
                name='medical_or_psychological',
            ),
        ]


class Attachment(models.Model):
    file = models.FileField(upload_to='attachments/%Y/%m/')
    filename = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255)
    size = models.PositiveIntegerField()
    media_type = models.CharField(max_length=100)
    is_medical = models.BooleanField(null=True, blank=True)
    is_psychological = models.BooleanField(null=True, blank=True)
    uploaded_by = models.CharField(max_length=20, choices=OFFICE_CHOICES)
    uploaded_at = models.DateTimeField(auto_now_add=True)
    case_record = models.ForeignKey(CaseRecord, on_delete=models.CASCADE, null=True, blank=True, related_name='attachments')
    counseling_record = models.ForeignKey(CounselingRecord, on_delete=models.CASCADE, null=True, blank=True, related_name='attachments')
    medical_record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, null=True, blank=True, related_name='attachments')


class RecordEdit(models.Model):
    edited_by = models.CharField(max_length=20, choices=OFFICE_CHOICES)
    edited_at = models.DateTimeField(auto_now_add=True)
    case_record = models.ForeignKey(CaseRecord, on_delete=models.CASCADE, null=True, blank=True, related_name='edit_history')
    counseling_record = models.ForeignKey(CounselingRecord, on_delete=models.CASCADE, null=True, blank=True, related_name='edit_history')
    medical_record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, null=True, blank=True, related_name='edit_history')

    class Meta:
        ordering = ['edited_at', 'id']


class Notification(models.Model):
    receiver = models.CharField(max_length=20, choices=OFFICE_CHOICES)
    sender = models.CharField(max_length=20, choices=OFFICE_CHOICES)
    message = models.CharField(max_length=255)
    record_type = models.CharField(max_length=15)
    record_id = models.PositiveIntegerField()
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']


# Reverse accessor on Attachment / RecordEdit for each record type
RECORD_LINK_FIELD = {
    CASE: 'case_record',
    COUNSELING: 'counseling_record',
    MEDICAL: 'medical_record',
}

RECORD_MODELS = {
    CASE: CaseRecord,
    COUNSELING: CounselingRecord,
    MEDICAL: MedicalRecord,
}
