import pytest
from rest_framework.test import APIClient

from records.authentication import issue_tokens
from records.context import ViewContext
from records.models import CaseRecord, CounselingRecord, MedicalRecord, Student
from records.offices import ReferralState


@pytest.fixture(autouse=True)
def _media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "media"


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """APIClient authenticated as ``office`` (optionally viewing as another office)."""
    def make(office, view_as=None):
        client = APIClient()
        tokens = issue_tokens(ViewContext(office, view_as), name=f"{office} user")
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        return client
    return make


@pytest.fixture
def student(db):
    return Student.objects.create(
        student_id="2024-0001",
        name="Ana Cruz",
        strand="STEM",
        grade_level="11",
        section="A",
        school_year_semester="2024-2025 1st",
    )


@pytest.fixture
def other_student(db):
    return Student.objects.create(student_id="2024-0002", name="Ben Reyes", strand="ABM", grade_level="12")


@pytest.fixture
def make_case(db):
    def make(student, referral_state=ReferralState.NONE, **fields):
        values = {
            "violation_level": "Major",
            "status": "Ongoing",
            "description": "Cutting classes",
        }
        values.update(fields)
        return CaseRecord.objects.create(student=student, referral_state=referral_state, **values)
    return make


@pytest.fixture
def make_medical(db):
    def make(student, referral_state=ReferralState.NONE, **fields):
        values = {
            "subject": "Headache",
            "status": "Ongoing",
            "medical_details": "Frequent headaches during exams",
            "is_medical": True,
            "is_psychological": False,
        }
        values.update(fields)
        return MedicalRecord.objects.create(student=student, referral_state=referral_state, **values)
    return make


@pytest.fixture
def make_counseling(db):
    def make(student, session_number=1, **fields):
        values = {
            "status": "To Schedule",
            "concern": "Adjustment to new school",
        }
        values.update(fields)
        return CounselingRecord.objects.create(student=student, session_number=session_number, **values)
    return make
