import logging

from rest_framework import status
from rest_framework.exceptions import APIException, AuthenticationFailed, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import exception_handler
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

logger = logging.getLogger(__name__)


class ViewOnly(PermissionDenied):
    default_detail = 'Administrator view is read-only.'
    default_code = 'view-only'


class ReferralConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Referral cannot be confirmed.'
    default_code = 'referral-conflict'


class TransportError(Exception):
    """A request to the records API failed or came back without ``success``."""

    def __init__(self, message, operation=None, record_id=None, status_code=None):
        super().__init__(message)
        self.operation = operation
        self.record_id = record_id
        self.status_code = status_code

    def __str__(self):
        text = super().__str__()
        if self.operation:
            target = f" record {self.record_id}" if self.record_id is not None else ""
            text = f"{self.operation}{target}: {text}"
        return text


def custom_exception_handler(exc, context):
    if isinstance(exc, (InvalidToken, TokenError, AuthenticationFailed)):
        return Response(
            {"success": False, "error": "invalid-token", "detail": "Invalid token."},
            status=401
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, PermissionDenied):
        logger.info("Refused %s %s: %s", context['request'].method, context['request'].path, exc.detail)

    detail = response.data
    if isinstance(detail, dict) and set(detail) == {"detail"}:
        detail = detail["detail"]
    codes = exc.get_codes() if isinstance(exc, APIException) else None
    response.data = {
        "success": False,
        "error": codes if isinstance(codes, str) else getattr(exc, 'default_code', 'error'),
        "detail": detail,
    }
    return response
