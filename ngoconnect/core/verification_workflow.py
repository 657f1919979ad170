"""Status workflow state machines for registrations and need-requests."""

from ngoconnect.models.enums import RegistrationStatus, RequestStatus

# Key: current status, Value: statuses reachable from it.
# UNREGISTERED -> PENDING and REJECTED -> PENDING are submissions: they create a
# new record instead of mutating the current one.
REGISTRATION_TRANSITIONS: dict[RegistrationStatus, list[RegistrationStatus]] = {
    RegistrationStatus.UNREGISTERED: [RegistrationStatus.PENDING],
    RegistrationStatus.PENDING: [RegistrationStatus.APPROVED, RegistrationStatus.REJECTED],
    RegistrationStatus.APPROVED: [],
    RegistrationStatus.REJECTED: [RegistrationStatus.PENDING],
}

REQUEST_TRANSITIONS: dict[RequestStatus, list[RequestStatus]] = {
    RequestStatus.PENDING: [RequestStatus.APPROVED, RequestStatus.REJECTED],
    RequestStatus.APPROVED: [RequestStatus.FULFILLED],
    RequestStatus.FULFILLED: [],
    RequestStatus.REJECTED: [],
}


def is_valid_transition(
    from_status: RegistrationStatus,
    to_status: RegistrationStatus,
) -> bool:
    """Check if a registration status transition is valid.

    Examples:
        >>> is_valid_transition(RegistrationStatus.PENDING, RegistrationStatus.APPROVED)
        True
        >>> is_valid_transition(RegistrationStatus.UNREGISTERED, RegistrationStatus.APPROVED)
        False
        >>> is_valid_transition(RegistrationStatus.REJECTED, RegistrationStatus.PENDING)
        True
    """
    return to_status in REGISTRATION_TRANSITIONS.get(from_status, [])


def can_submit(current: RegistrationStatus) -> bool:
    """Whether a (re-)submission is allowed from ``current``."""
    return is_valid_transition(current, RegistrationStatus.PENDING)


def is_valid_request_transition(from_status: RequestStatus, to_status: RequestStatus) -> bool:
    """Check if a need-request status transition is valid.

    Examples:
        >>> is_valid_request_transition(RequestStatus.APPROVED, RequestStatus.FULFILLED)
        True
        >>> is_valid_request_transition(RequestStatus.PENDING, RequestStatus.FULFILLED)
        False
    """
    return to_status in REQUEST_TRANSITIONS.get(from_status, [])


def get_allowed_request_transitions(from_status: RequestStatus) -> list[RequestStatus]:
    return REQUEST_TRANSITIONS.get(from_status, [])
