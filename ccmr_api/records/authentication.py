from rest_framework.permissions import BasePermission
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken

from .context import OFFICE_CLAIM, ViewContext
from .offices import ACCOUNT_OFFICES, ADMINISTRATOR


class AuthlessUser:
    is_authenticated = True


class IsOfficeUser(BasePermission):
    def has_permission(self, request, view):
        return bool(request.auth) and request.auth.get(OFFICE_CLAIM) in ACCOUNT_OFFICES


class IsAdministrator(BasePermission):
    message = "Only administrators can do this."

    def has_permission(self, request, view):
        return bool(request.auth) and request.auth.get(OFFICE_CLAIM) == ADMINISTRATOR


class CustomJWTAuthentication(JWTAuthentication):
    def get_user(self, validated_token):
        return AuthlessUser()

    def authenticate(self, request):
        header = self.get_header(request)
        if header is None:
            return None
        raw_token = self.get_raw_token(header)
        if raw_token is None:
            return None
        validated_token = self.get_validated_token(raw_token)
        return (AuthlessUser(), validated_token)


def view_context(request):
    """The ViewContext carried by the request's access token."""
    return ViewContext.from_claims(request.auth)


def issue_tokens(context, name=None):
    payload = context.to_claims()
    if name:
        payload['name'] = name

    refresh = RefreshToken()
    for k, v in payload.items():
        refresh[k] = v

    access = refresh.access_token
    for k, v in payload.items():
        access[k] = v

    return {
        'refresh': str(refresh),
        'access': str(access),
    }
