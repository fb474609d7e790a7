import json

from django.conf import settings
from rest_framework.exceptions import ValidationError

from .offices import ALLOWED_ATTACHMENT_TYPES, INF, MAX_ATTACHMENTS, MEDICAL

YES_VALUES = ("yes", "true", "1", "y")
NO_VALUES = ("no", "false", "0", "n")


def parse_yes_no(value, field):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower() if value is not None else ''
    if text in YES_VALUES:
        return True
    if text in NO_VALUES:
        return False
    raise ValidationError({field: 'Expected "Yes" or "No".'})


def yes_no(flag):
    return "Yes" if flag else "No"


def parse_json_list(raw, field):
    """Decode a JSON list form field; repeated fields arrive as a list of JSON strings."""
    if raw in (None, ''):
        return []
    if isinstance(raw, (list, tuple)):
        items = []
        for entry in raw:
            items.extend(parse_json_list(entry, field))
        return items
    if isinstance(raw, dict):
        return [raw]
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError({field: 'Must be valid JSON.'})
    if isinstance(decoded, dict):
        return [decoded]
    if not isinstance(decoded, list):
        raise ValidationError({field: 'Must be a JSON list.'})
    return decoded


def retained_filenames(raw):
    """Filenames listed in ``existingAttachments``: entries are ``{"filename": ...}`` objects or bare names."""
    names = set()
    for entry in parse_json_list(raw, 'existingAttachments'):
        if isinstance(entry, dict):
            entry = entry.get('filename')
        if not isinstance(entry, str) or not entry:
            raise ValidationError({'existingAttachments': 'Each entry needs a filename.'})
        names.add(entry)
    return names


def classification_map(classifications):
    mapping = {}
    for entry in classifications:
        if not isinstance(entry, dict) or not entry.get('filename'):
            raise ValidationError({'fileClassifications': 'Each classification needs a filename.'})
        mapping[entry['filename']] = (
            parse_yes_no(entry.get('isMedical', False), 'fileClassifications'),
            parse_yes_no(entry.get('isPsychological', False), 'fileClassifications'),
        )
    return mapping


def validate_attachments(record_type, uploads, retained_count=0, classifications=None, uploader_office=None):
    """
    Check new uploads against the per-type rules.

    ``uploads`` are file-like objects exposing ``name``, ``size`` and
    ``content_type`` (Django ``UploadedFile`` or ``client.UploadFile``).
    Returns ``{filename: (is_medical, is_psychological)}`` for infirmary
    uploads to medical records, otherwise an empty dict.
    """
    errors = []
    max_bytes = settings.ATTACHMENT_MAX_BYTES
    limit = MAX_ATTACHMENTS[record_type]

    if retained_count + len(uploads) > limit:
        errors.append(f'At most {limit} file(s) allowed; {retained_count} kept and {len(uploads)} new.')

    for upload in uploads:
        if upload.content_type not in ALLOWED_ATTACHMENT_TYPES:
            errors.append(f'{upload.name}: only PDF, DOC and DOCX files are allowed.')
        if upload.size > max_bytes:
            errors.append(f'{upload.name}: larger than {max_bytes // (1024 * 1024)} MB.')

    classified = {}
    if record_type == MEDICAL and uploader_office == INF and uploads:
        mapping = classification_map(classifications or [])
        for upload in uploads:
            flags = mapping.get(upload.name)
            if flags is None or not any(flags):
                errors.append(f'{upload.name}: classify the file as medical and/or psychological.')
            else:
                classified[upload.name] = flags

    if errors:
        raise ValidationError({'attachments': errors})
    return classified
