import json

import pytest
from rest_framework.exceptions import ValidationError

from records.client import UploadFile
from records.offices import CASE, COUNSELING, INF, MEDICAL, OPD
from records.serializers import CounselingRecordSerializer, MedicalRecordSerializer, CaseRecordSerializer
from records.validation import parse_json_list, parse_yes_no, retained_filenames, validate_attachments

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

STUDENT = {
    "student_id": "2024-0001",
    "student_name": "Ana Cruz",
    "strand": "STEM",
    "grade_level": 11,
}


def pdf(name="report.pdf", size=100):
    return UploadFile(name, b"x" * size, PDF)


@pytest.mark.parametrize("value, expected", [
    ("Yes", True), ("yes", True), (True, True), ("1", True),
    ("No", False), ("NO", False), (False, False), ("0", False),
])
def test_parse_yes_no(value, expected):
    assert parse_yes_no(value, "referred") is expected


@pytest.mark.parametrize("value", ["maybe", "", None])
def test_parse_yes_no_rejects(value):
    with pytest.raises(ValidationError):
        parse_yes_no(value, "referred")


def test_parse_json_list():
    assert parse_json_list(None, "existingAttachments") == []
    assert parse_json_list('[{"filename": "a.pdf"}]', "existingAttachments") == [{"filename": "a.pdf"}]
    assert parse_json_list(['{"filename": "a.pdf"}', '{"filename": "b.pdf"}'], "f") == [
        {"filename": "a.pdf"}, {"filename": "b.pdf"},
    ]
    with pytest.raises(ValidationError):
        parse_json_list("{not json", "existingAttachments")


def test_retained_filenames_accept_objects_and_bare_names():
    assert retained_filenames('[{"filename": "a.pdf"}, "b.pdf"]') == {"a.pdf", "b.pdf"}
    assert retained_filenames(None) == set()


@pytest.mark.parametrize("raw", ['[42]', '[{"name": "a.pdf"}]', '[""]'])
def test_retained_filenames_rejects_entries_without_a_name(raw):
    with pytest.raises(ValidationError):
        retained_filenames(raw)


class TestAttachments:
    def test_case_allows_one_file(self):
        assert validate_attachments(CASE, [pdf()]) == {}
        with pytest.raises(ValidationError):
            validate_attachments(CASE, [pdf("a.pdf"), pdf("b.pdf")])

    def test_retained_files_count_toward_limit(self):
        with pytest.raises(ValidationError):
            validate_attachments(CASE, [pdf()], retained_count=1)
        validate_attachments(COUNSELING, [pdf()], retained_count=4)
        with pytest.raises(ValidationError):
            validate_attachments(COUNSELING, [pdf("a.pdf"), pdf("b.pdf")], retained_count=4)

    def test_rejects_other_media_types(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_attachments(COUNSELING, [UploadFile("photo.png", b"png", "image/png")])
        assert "photo.png" in str(excinfo.value.detail)

    def test_rejects_large_files(self, settings):
        settings.ATTACHMENT_MAX_BYTES = 50
        with pytest.raises(ValidationError):
            validate_attachments(COUNSELING, [pdf(size=51)])

    def test_infirmary_uploads_need_classification(self):
        with pytest.raises(ValidationError):
            validate_attachments(MEDICAL, [pdf("lab.pdf")], uploader_office=INF)
        with pytest.raises(ValidationError):
            validate_attachments(
                MEDICAL, [pdf("lab.pdf")], uploader_office=INF,
                classifications=[{"filename": "lab.pdf", "isMedical": "No", "isPsychological": "No"}],
            )

    def test_infirmary_classification_is_returned(self):
        classified = validate_attachments(
            MEDICAL, [pdf("lab.pdf"), UploadFile("notes.docx", b"d", DOCX)], uploader_office=INF,
            classifications=[
                {"filename": "lab.pdf", "isMedical": "Yes", "isPsychological": "No"},
                {"filename": "notes.docx", "isMedical": True, "isPsychological": True},
            ],
        )
        assert classified == {"lab.pdf": (True, False), "notes.docx": (True, True)}

    def test_other_offices_skip_classification(self):
        assert validate_attachments(MEDICAL, [pdf("lab.pdf")], uploader_office=OPD) == {}


class TestWriteSerializers:
    def test_case_requires_referral_answer(self):
        serializer = CaseRecordSerializer(data={**STUDENT, "violation_level": "Major", "status": "Ongoing",
                                                "description": "Fighting"})
        assert not serializer.is_valid()
        assert "referred" in serializer.errors

    def test_case_accepts_yes(self):
        serializer = CaseRecordSerializer(data={**STUDENT, "violation_level": "Major", "status": "Ongoing",
                                                "description": "Fighting", "referred": "Yes"})
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["referred"] is True
        assert serializer.validated_data["grade_level"] == "11"

    def test_case_rejects_unknown_violation_level(self):
        serializer = CaseRecordSerializer(data={**STUDENT, "violation_level": "Huge", "status": "Ongoing",
                                                "description": "Fighting", "referred": "No"})
        assert not serializer.is_valid()
        assert "violation_level" in serializer.errors

    def test_counseling_to_schedule_clears_date_and_time(self):
        serializer = CounselingRecordSerializer(data={
            **STUDENT, "session_number": 1, "status": "To Schedule", "concern": "Stress",
            "date": "2024-05-01", "time": "09:00",
        })
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["date"] is None
        assert serializer.validated_data["time"] is None

    def test_counseling_scheduled_needs_date_and_time(self):
        serializer = CounselingRecordSerializer(data={
            **STUDENT, "session_number": 1, "status": "Scheduled", "concern": "Stress", "date": "",
        })
        assert not serializer.is_valid()
        assert set(serializer.errors) == {"date", "time"}

    def test_medical_must_be_medical_or_psychological(self):
        serializer = MedicalRecordSerializer(data={
            **STUDENT, "subject": "Checkup", "status": "Ongoing", "medical_details": "Routine",
            "is_medical": "No", "is_psychological": "No",
        })
        assert not serializer.is_valid()
        assert "non_field_errors" in serializer.errors

    def test_medical_valid(self):
        serializer = MedicalRecordSerializer(data={
            **STUDENT, "subject": "Checkup", "status": "Ongoing", "medical_details": "Routine",
            "is_medical": "No", "is_psychological": "Yes",
        })
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["referred"] is False


def test_classification_entries_as_json_strings():
    entries = parse_json_list([json.dumps({"filename": "lab.pdf", "isMedical": "Yes"})], "fileClassifications")
    assert validate_attachments(MEDICAL, [pdf("lab.pdf")], classifications=entries, uploader_office=INF) == {
        "lab.pdf": (True, False),
    }
