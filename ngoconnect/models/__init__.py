"""SQLAlchemy models."""

from ngoconnect.models.audit_event import AuditEvent
from ngoconnect.models.base import Base, BaseModel
from ngoconnect.models.donation import Donation
from ngoconnect.models.enums import (
    AuditAction,
    DonationStatus,
    DonationUnit,
    NotificationCategory,
    OrganizationType,
    PrincipalRole,
    RegistrationStatus,
    RequestCategory,
    RequestStatus,
    RequestWindow,
    UrgencyLevel,
)
from ngoconnect.models.need_request import NeedRequest
from ngoconnect.models.notification import Notification
from ngoconnect.models.organization_registration import OrganizationRegistration

__all__ = [
    "Base",
    "BaseModel",
    "PrincipalRole",
    "RegistrationStatus",
    "OrganizationType",
    "RequestCategory",
    "UrgencyLevel",
    "RequestStatus",
    "RequestWindow",
    "DonationStatus",
    "DonationUnit",
    "NotificationCategory",
    "AuditAction",
    "OrganizationRegistration",
    "NeedRequest",
    "Donation",
    "Notification",
    "AuditEvent",
]
