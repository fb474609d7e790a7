import logging

from rest_framework.exceptions import PermissionDenied, ValidationError

from .offices import ACCOUNT_OFFICES, ADMINISTRATOR, NAVIGATION, OFFICES, RECORD_TYPES, THEMES
from .permissions import (
    can_confirm_referrals,
    can_create,
    can_view_referral_queue,
    capabilities,
    visibility_scope,
)

logger = logging.getLogger(__name__)

OFFICE_CLAIM = "office"
VIEW_AS_CLAIM = "view_as"


class ViewContext:
    """
    Who is acting, and which office's data they are looking at.

    Built once per request from the token claims and passed down explicitly.
    Instances are immutable; ``impersonate`` and ``clear_impersonation`` return
    new contexts.
    """

    __slots__ = ("acting_office", "impersonated_office")

    def __init__(self, acting_office, impersonated_office=None):
        if acting_office not in ACCOUNT_OFFICES:
            raise ValidationError({"office": f"Unknown office {acting_office!r}."})
        if impersonated_office is not None:
            if acting_office != ADMINISTRATOR:
                raise PermissionDenied("Only administrators can view as another office.")
            if impersonated_office not in OFFICES:
                raise ValidationError({"office": f"Cannot view as {impersonated_office!r}."})
        object.__setattr__(self, "acting_office", acting_office)
        object.__setattr__(self, "impersonated_office", impersonated_office)

    def __setattr__(self, name, value):
        raise AttributeError("ViewContext is immutable")

    def __eq__(self, other):
        if not isinstance(other, ViewContext):
            return NotImplemented
        return (self.acting_office, self.impersonated_office) == (other.acting_office, other.impersonated_office)

    def __hash__(self):
        return hash((self.acting_office, self.impersonated_office))

    def __repr__(self):
        return f"ViewContext(acting_office={self.acting_office!r}, impersonated_office={self.impersonated_office!r})"

    @classmethod
    def from_claims(cls, claims):
        if not claims or not claims.get(OFFICE_CLAIM):
            raise PermissionDenied("Token carries no office.")
        return cls(claims.get(OFFICE_CLAIM), claims.get(VIEW_AS_CLAIM) or None)

    def to_claims(self):
        claims = {OFFICE_CLAIM: self.acting_office}
        if self.impersonated_office:
            claims[VIEW_AS_CLAIM] = self.impersonated_office
        return claims

    @property
    def is_administrator(self):
        return self.acting_office == ADMINISTRATOR

    @property
    def is_impersonating(self):
        return self.impersonated_office is not None

    @property
    def effective_office(self):
        if self.is_administrator:
            return self.impersonated_office or ADMINISTRATOR
        return self.acting_office

    def impersonate(self, office):
        logger.info("%s now viewing as %s", self.acting_office, office)
        return ViewContext(self.acting_office, office)

    def clear_impersonation(self):
        return ViewContext(self.acting_office)

    # Write gates use the acting office, read scope uses the effective office.

    def capabilities(self, record_type):
        return capabilities(self.acting_office, record_type, impersonating=self.is_impersonating)

    def scope(self, record_type):
        return visibility_scope(self.effective_office, record_type)

    def can_create(self, record_type):
        return can_create(self.acting_office, record_type)

    @property
    def can_confirm_referrals(self):
        return can_confirm_referrals(self.acting_office)

    @property
    def can_view_referral_queue(self):
        return can_view_referral_queue(self.effective_office)

    @property
    def read_only(self):
        return self.is_administrator

    def navigation(self):
        return [{"label": label, "route": route} for label, route in NAVIGATION[self.effective_office]]

    def theme(self):
        return THEMES[self.effective_office]

    def describe(self):
        return {
            "acting_office": self.acting_office,
            "view_as": self.impersonated_office,
            "effective_office": self.effective_office,
            "read_only": self.read_only,
            "navigation": self.navigation(),
            "theme": self.theme(),
            "can_confirm_referrals": self.can_confirm_referrals,
            "capabilities": {
                record_type: self.capabilities(record_type)._asdict()
                for record_type in RECORD_TYPES
            },
        }
