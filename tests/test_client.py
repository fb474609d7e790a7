import json
from unittest import mock

import pytest
import requests
from rest_framework.exceptions import PermissionDenied, ValidationError

from records.client import RecordsClient, UploadFile
from records.context import ViewContext
from records.exceptions import TransportError, ViewOnly
from records.offices import ADMINISTRATOR, CASE, COUNSELING, GCO, INF, MEDICAL, OPD

MEDICAL_PAYLOAD = {
    "studentId": "2024-0003",
    "studentName": "Carla Santos",
    "subject": "Checkup",
    "status": "Ongoing",
    "medicalDetails": "Routine",
    "isMedical": "No",
    "isPsychological": "No",
}


def fake_response(body, status_code=200):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = body
    return response


@pytest.fixture
def session():
    fake = mock.Mock(spec=requests.Session)
    fake.headers = {}
    fake.request.return_value = fake_response({"success": True, "records": []})
    return fake


@pytest.fixture
def client(session):
    return RecordsClient("http://records.test/", access_token="abc", session=session)


def test_sets_bearer_token(client, session):
    assert session.headers["Authorization"] == "Bearer abc"


def test_fetch_records(client, session):
    client.fetch_records(MEDICAL, record_filter="MEDICAL")
    session.request.assert_called_once_with(
        "GET", "http://records.test/api/medical-records", timeout=10, params={"filter": "MEDICAL"},
    )


def test_search_students(client, session):
    session.request.return_value = fake_response({"success": True, "students": [{"student_id": "S1"}]})
    body = client.search_students(CASE, "ana")

    assert body["students"] == [{"student_id": "S1"}]
    assert session.request.call_args.args[1] == "http://records.test/api/student-case-records/search"
    assert session.request.call_args.kwargs["params"] == {"query": "ana"}


def test_network_failure_raises_transport_error(client, session):
    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(TransportError) as excinfo:
        client.fetch_records(CASE)
    assert excinfo.value.operation == "fetch records"


def test_unsuccessful_body_raises_transport_error(client, session):
    session.request.return_value = fake_response({"success": False, "error": "view-only", "detail": "Read only"}, 403)
    with pytest.raises(TransportError) as excinfo:
        client.confirm_referral(ViewContext(GCO), CASE, 7)
    assert excinfo.value.status_code == 403
    assert excinfo.value.record_id == 7
    assert "Read only" in str(excinfo.value)


def test_neither_medical_nor_psychological_is_rejected_before_sending(client, session):
    with pytest.raises(ValidationError):
        client.create_record(ViewContext(INF), MEDICAL, MEDICAL_PAYLOAD)
    session.request.assert_not_called()


def test_administrator_writes_are_refused_locally(client, session):
    with pytest.raises(ViewOnly):
        client.update_record(ViewContext(ADMINISTRATOR, GCO), COUNSELING, 1, {
            "studentId": "S1", "studentName": "Ana", "sessionNumber": 1, "status": "To Schedule", "concern": "x",
        })
    with pytest.raises(ViewOnly):
        client.confirm_referral(ViewContext(ADMINISTRATOR), CASE, 1)
    session.request.assert_not_called()


def test_out_of_office_create_is_refused_locally(client, session):
    with pytest.raises(PermissionDenied):
        client.create_record(ViewContext(OPD), MEDICAL, {**MEDICAL_PAYLOAD, "isMedical": "Yes"})
    with pytest.raises(PermissionDenied):
        client.confirm_referral(ViewContext(OPD), CASE, 1)
    session.request.assert_not_called()


def test_attachment_limits_are_checked_before_sending(client, session):
    files = [UploadFile("a.pdf", b"1", "application/pdf"), UploadFile("b.pdf", b"2", "application/pdf")]
    with pytest.raises(ValidationError):
        client.create_record(ViewContext(OPD), CASE, {
            "studentId": "S1", "studentName": "Ana", "violationLevel": "Minor", "status": "Ongoing",
            "description": "Late", "referred": "No",
        }, files=files)
    session.request.assert_not_called()


def test_create_sends_wire_fields(client, session):
    session.request.return_value = fake_response({"success": True, "recordId": 4}, 201)
    upload = UploadFile("lab.pdf", b"%PDF", "application/pdf")
    classification = {"filename": "lab.pdf", "isMedical": "Yes", "isPsychological": "No"}

    body = client.create_record(
        ViewContext(INF), MEDICAL, {**MEDICAL_PAYLOAD, "isMedical": "Yes", "date": "2024-05-02"},
        files=[upload], classifications=[classification],
    )

    assert body["recordId"] == 4
    method, url = session.request.call_args.args
    kwargs = session.request.call_args.kwargs
    assert (method, url) == ("POST", "http://records.test/api/medical-records")
    assert kwargs["data"]["isMedical"] == "Yes"
    assert kwargs["data"]["isPsychological"] == "No"
    assert kwargs["data"]["date"] == "2024-05-02"
    assert kwargs["data"]["fileClassifications"] == [json.dumps(classification)]
    assert kwargs["files"] == [("attachments", ("lab.pdf", b"%PDF", "application/pdf"))]


def test_update_sends_retained_and_deleted_files(client, session):
    existing = [{"filename": "keep.pdf"}, {"filename": "drop.pdf"}]
    client.update_record(ViewContext(GCO), COUNSELING, 3, {
        "studentId": "S1", "studentName": "Ana", "sessionNumber": 2, "status": "To Schedule", "concern": "x",
    }, existing_attachments=existing, files_to_delete=["drop.pdf"])

    kwargs = session.request.call_args.kwargs
    assert session.request.call_args.args == ("PUT", "http://records.test/api/counseling-records/3")
    assert json.loads(kwargs["data"]["existingAttachments"]) == [{"filename": "keep.pdf"}]
    assert kwargs["data"]["filesToDelete"] == ["drop.pdf"]


def test_confirm_referral_route(client, session):
    session.request.return_value = fake_response({"success": True, "counselingRecordId": 9})
    client.confirm_referral(ViewContext(GCO), MEDICAL, 5)
    assert session.request.call_args.args == ("PUT", "http://records.test/api/pending-referrals/medical-record/5/confirm")
