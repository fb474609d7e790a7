"""
Python client for the records API.

Authorization and validation problems are raised locally, before any request
is sent; only transport and server failures come back as ``TransportError``.
"""
import json
import logging

import requests
from rest_framework.exceptions import PermissionDenied

from .classifier import normalize
from .exceptions import TransportError, ViewOnly
from .offices import INF, RECORD_SLUGS, REFERRAL_QUEUE_TYPES
from .serializers import WRITE_SERIALIZERS
from .validation import validate_attachments, yes_no

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

# canonical field -> form field name sent over the wire
WIRE_FIELDS = {
    'student_id': 'studentId',
    'student_name': 'studentName',
    'strand': 'strand',
    'grade_level': 'gradeLevel',
    'section': 'section',
    'school_year_semester': 'schoolYearSemester',
    'remarks': 'remarks',
    'date': 'date',
    'violation_level': 'violationLevel',
    'status': 'status',
    'description': 'description',
    'referred': 'referredToGCO',
    'session_number': 'sessionNumber',
    'time': 'time',
    'concern': 'concern',
    'psychological_condition': 'psychologicalCondition',
    'subject': 'subject',
    'medical_details': 'medicalDetails',
    'is_medical': 'isMedical',
    'is_psychological': 'isPsychological',
}


class UploadFile:
    """A file to attach, described the way the server's validation sees it."""

    def __init__(self, name, content, content_type):
        self.name = name
        self.content = content
        self.content_type = content_type

    @property
    def size(self):
        return len(self.content)


class RecordsClient:
    def __init__(self, base_url, access_token=None, session=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        if access_token:
            self.session.headers['Authorization'] = f'Bearer {access_token}'

    def _url(self, path):
        return f"{self.base_url}/api/{path}"

    def _request(self, method, path, operation, record_id=None, **kwargs):
        try:
            response = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s failed: %s", operation, exc)
            raise TransportError(str(exc), operation, record_id)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.ok or not body.get('success'):
            message = body.get('detail') or body.get('error') or f'HTTP {response.status_code}'
            logger.warning("%s failed with %s: %s", operation, response.status_code, message)
            raise TransportError(message, operation, record_id, response.status_code)
        return body

    # listings

    def fetch_records(self, record_type, record_filter=None, referred_only=False):
        params = {}
        if record_filter:
            params['filter'] = record_filter
        if referred_only:
            params['referredOnly'] = 'Yes'
        return self._request('GET', f"{RECORD_SLUGS[record_type]}-records", 'fetch records', params=params)

    def search_records(self, record_type, query, record_filter=None):
        params = {'query': query}
        if record_filter:
            params['filter'] = record_filter
        return self._request('GET', f"{RECORD_SLUGS[record_type]}-records/search", 'search records', params=params)

    def fetch_students(self, record_type, record_filter=None):
        params = {'filter': record_filter} if record_filter else {}
        return self._request('GET', f"student-{RECORD_SLUGS[record_type]}-records", 'fetch students', params=params)

    def search_students(self, record_type, query, record_filter=None):
        params = {'query': query}
        if record_filter:
            params['filter'] = record_filter
        return self._request('GET', f"student-{RECORD_SLUGS[record_type]}-records/search", 'search students', params=params)

    def fetch_record(self, record_type, record_id):
        body = self._request('GET', f"{RECORD_SLUGS[record_type]}-records/{record_id}", 'fetch record', record_id)
        body['record'] = normalize(body.get('record') or {}, record_type)
        return body

    # writes

    def _form(self, record_type, payload):
        serializer = WRITE_SERIALIZERS[record_type](data=normalize(payload, record_type))
        serializer.is_valid(raise_exception=True)

        form = {}
        for field, value in serializer.validated_data.items():
            if isinstance(value, bool):
                value = yes_no(value)
            elif value is None:
                value = ''
            elif hasattr(value, 'isoformat'):
                value = value.isoformat()
            form[WIRE_FIELDS[field]] = str(value)
        return form

    def _files(self, files):
        return [('attachments', (upload.name, upload.content, upload.content_type)) for upload in files]

    def _check_writable(self, context, record_type, creating):
        if context.read_only:
            raise ViewOnly()
        allowed = context.can_create(record_type) if creating else context.capabilities(record_type).can_edit
        if not allowed:
            raise PermissionDenied(f"{context.acting_office} cannot {'create' if creating else 'edit'} {record_type} records.")

    def create_record(self, context, record_type, payload, files=(), classifications=()):
        self._check_writable(context, record_type, creating=True)
        form = self._form(record_type, payload)
        files = list(files)
        validate_attachments(record_type, files, 0, list(classifications), context.acting_office)

        data = dict(form)
        if classifications:
            data['fileClassifications'] = [json.dumps(entry) for entry in classifications]
        return self._request(
            'POST', f"{RECORD_SLUGS[record_type]}-records", 'create record',
            data=data, files=self._files(files),
        )

    def update_record(self, context, record_type, record_id, payload, existing_attachments=(),
                      files_to_delete=(), files=(), classifications=()):
        self._check_writable(context, record_type, creating=False)
        form = self._form(record_type, payload)
        files = list(files)
        retained = [item for item in existing_attachments if item.get('filename') not in set(files_to_delete)]
        uploader = context.acting_office if context.acting_office == INF else None
        validate_attachments(record_type, files, len(retained), list(classifications), uploader)

        data = dict(form)
        data['existingAttachments'] = json.dumps(retained, default=str)
        data['filesToDelete'] = list(files_to_delete)
        if classifications:
            data['fileClassifications'] = [json.dumps(entry) for entry in classifications]
        return self._request(
            'PUT', f"{RECORD_SLUGS[record_type]}-records/{record_id}", 'update record', record_id,
            data=data, files=self._files(files),
        )

    # referrals

    def fetch_pending_referrals(self):
        return self._request('GET', 'pending-referrals', 'fetch pending referrals')

    def confirm_referral(self, context, record_type, record_id):
        if not context.can_confirm_referrals:
            if context.read_only:
                raise ViewOnly()
            raise PermissionDenied("Only the Guidance Counseling Office can confirm referrals.")
        queue_type = REFERRAL_QUEUE_TYPES[record_type].replace('_', '-')
        return self._request(
            'PUT', f"pending-referrals/{queue_type}/{record_id}/confirm", 'confirm referral', record_id,
        )
