"""Enumerations for principals, lifecycle statuses and audit actions."""

from enum import Enum


class PrincipalRole(str, Enum):
    """Role claim issued by the identity provider."""

    ADMIN = "admin"
    NGO = "ngo"
    DONOR = "donor"


class RegistrationStatus(str, Enum):
    """Verification status of an organization.

    Workflow:
    - UNREGISTERED: no record exists (never persisted)
    - PENDING: submitted, awaiting review
    - APPROVED: verified, may create requests and receive donations
    - REJECTED: refused; the organization may submit again
    """

    UNREGISTERED = "unregistered"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrganizationType(str, Enum):
    NGO = "NGO"
    TRUST = "Trust"


class RequestCategory(str, Enum):
    """Closed set of need-request and donation categories."""

    FOOD = "food"
    CLOTHING = "clothing"
    MEDICAL = "medical"
    EDUCATION = "education"
    OTHER = "other"


class UrgencyLevel(str, Enum):
    """Informational only; never affects fulfillment."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RequestStatus(str, Enum):
    """Need-request lifecycle, driven by administrators."""

    PENDING = "pending"
    APPROVED = "approved"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class DonationStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"


class DonationUnit(str, Enum):
    KG = "kg"
    ITEMS = "items"
    PACKETS = "packets"
    BOXES = "boxes"


class RequestWindow(str, Enum):
    """Trailing creation-time windows for listing requests."""

    LAST_7_DAYS = "last_7_days"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"


class NotificationCategory(str, Enum):
    REGISTRATION_APPROVED = "registration_approved"
    REGISTRATION_REJECTED = "registration_rejected"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    REQUEST_FULFILLED = "request_fulfilled"
    DONATION_ASSIGNED = "donation_assigned"


class AuditAction(str, Enum):
    """Audit action enumeration for state-changing operations."""

    # Registration
    REGISTRATION_SUBMIT = "registration.submit"
    REGISTRATION_APPROVE = "registration.approve"
    REGISTRATION_REJECT = "registration.reject"

    # Need-request
    REQUEST_CREATE = "request.create"
    REQUEST_STATUS_CHANGE = "request.status_change"

    # Donation
    DONATION_CREATE = "donation.create"
    DONATION_ASSIGN = "donation.assign"
