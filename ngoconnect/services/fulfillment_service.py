"""Fulfillment reconciliation for an organization's need-requests.

Figures are recomputed from the assigned donations on every read instead of
being kept in a running counter, so a corrected or missed assignment can never
leave a stale total behind. The computation only reads.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, tzinfo
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ngoconnect.core.config import get_settings
from ngoconnect.core.metrics import FULFILLMENT_INTEGRITY_WARNINGS_TOTAL
from ngoconnect.core.structured_logging import log_json
from ngoconnect.core.time_windows import as_aware_utc, count_by_month, trailing_months
from ngoconnect.models.donation import Donation
from ngoconnect.models.enums import RequestCategory, RequestStatus, UrgencyLevel
from ngoconnect.models.need_request import NeedRequest
from ngoconnect.schemas.fulfillment import (
    CategoryTotal,
    FulfillmentReport,
    MonthlyActivity,
    OrganizationTotals,
    RequestFulfillment,
    UrgentRequest,
)

logger = logging.getLogger(__name__)

URGENT_REQUEST_LIMIT = 5
ACTIVITY_MONTHS = 12
OPEN_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.APPROVED})
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def compute_fulfilled_percent(received_quantity: float, required_quantity: float) -> int:
    """Percentage of ``required_quantity`` covered, rounded half-up and clamped to 0-100.

    Over-delivery saturates at 100. A non-positive or non-finite input yields 0.

    Examples:
        >>> compute_fulfilled_percent(13, 20)
        65
        >>> compute_fulfilled_percent(150, 100)
        100
        >>> compute_fulfilled_percent(5, 0)
        0
    """
    if not (math.isfinite(received_quantity) and math.isfinite(required_quantity)):
        return 0
    if required_quantity <= 0 or received_quantity <= 0:
        return 0
    percent = math.floor(received_quantity / required_quantity * 100 + 0.5)
    return max(0, min(100, percent))


def sum_by_request(donations: Iterable[Donation]) -> dict[UUID | None, float]:
    """Total donated quantity per ``assigned_request_id`` (None = organization only)."""
    totals: dict[UUID | None, float] = defaultdict(float)
    for donation in donations:
        totals[donation.assigned_request_id] += donation.quantity
    return dict(totals)


def urgent_open_requests(
    requests: Iterable[NeedRequest],
    received: dict[UUID | None, float],
    limit: int = URGENT_REQUEST_LIMIT,
) -> list[UrgentRequest]:
    """High-urgency requests still pending or approved, earliest ``needed_by`` first.

    Requests without a deadline come last, oldest first among themselves.
    """
    candidates = [
        r for r in requests if r.urgency_level == UrgencyLevel.HIGH and r.status in OPEN_STATUSES
    ]
    candidates.sort(
        key=lambda r: (
            r.needed_by is None,
            r.needed_by or date.max,
            as_aware_utc(r.created_at) if r.created_at else EPOCH,
        )
    )
    return [
        UrgentRequest(
            request_id=r.id,
            title=r.title,
            category=r.category,
            status=r.status,
            needed_by=r.needed_by,
            required_quantity=r.required_quantity,
            received_quantity=received.get(r.id, 0.0),
            fulfilled_percent=compute_fulfilled_percent(
                received.get(r.id, 0.0), r.required_quantity
            ),
        )
        for r in candidates[:limit]
    ]


def _integrity_warning(organization_id: str, donation: Donation, reason: str) -> None:
    FULFILLMENT_INTEGRITY_WARNINGS_TOTAL.inc()
    log_json(
        logger,
        logging.WARNING,
        "fulfillment_integrity_warning",
        organization_id=organization_id,
        donation_id=str(donation.id),
        assigned_request_id=str(donation.assigned_request_id)
        if donation.assigned_request_id
        else None,
        reason=reason,
    )


def reconcile(
    organization_id: str,
    requests: Sequence[NeedRequest],
    donations: Sequence[Donation],
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> FulfillmentReport:
    """Compute per-request fulfillment, organization totals and dashboard series.

    Donations whose quantity is not a finite number are left out entirely;
    donations earmarked for a request the organization does not own count
    toward organization totals but never toward a request. Both are reported
    in ``excluded_donation_count``.

    Args:
        organization_id: Organization being reported on
        requests: Every request owned by the organization
        donations: Every donation assigned to the organization
        now: Reference instant for the monthly series (defaults to the current time)
        tz: Zone that defines month boundaries (defaults to ``APP_TIMEZONE``)

    Returns:
        FulfillmentReport with one entry per request, in the order given
    """
    owned = {r.id: r for r in requests if r.organization_id == organization_id}

    counted: list[Donation] = []
    earmarked: list[Donation] = []
    excluded = 0
    for donation in donations:
        if donation.assigned_organization_id != organization_id:
            continue
        if donation.quantity is None or not math.isfinite(donation.quantity):
            excluded += 1
            _integrity_warning(organization_id, donation, "invalid_quantity")
            continue
        counted.append(donation)
        if donation.assigned_request_id is None:
            continue
        if donation.assigned_request_id not in owned:
            excluded += 1
            _integrity_warning(organization_id, donation, "foreign_request")
            continue
        earmarked.append(donation)

    received = sum_by_request(earmarked)

    items: list[RequestFulfillment] = []
    for request in owned.values():
        received_quantity = received.get(request.id, 0.0)
        items.append(
            RequestFulfillment(
                request_id=request.id,
                category=request.category,
                status=request.status,
                required_quantity=request.required_quantity,
                received_quantity=received_quantity,
                fulfilled_percent=compute_fulfilled_percent(
                    received_quantity, request.required_quantity
                ),
            )
        )

    by_category: dict[RequestCategory, list[float]] = defaultdict(list)
    for donation in counted:
        by_category[donation.category].append(donation.quantity)

    requests_by_status = {s.value: 0 for s in RequestStatus}
    for request in owned.values():
        requests_by_status[request.status.value] += 1

    totals = OrganizationTotals(
        donation_count=len(counted),
        total_quantity=sum(d.quantity for d in counted),
        unearmarked_quantity=sum(d.quantity for d in counted if d.assigned_request_id is None),
        excluded_donation_count=excluded,
        by_category=[
            CategoryTotal(
                category=category,
                donation_count=len(quantities),
                total_quantity=sum(quantities),
            )
            for category, quantities in sorted(by_category.items(), key=lambda kv: kv[0].value)
        ],
        requests_by_status=requests_by_status,
    )

    months = trailing_months(
        now or datetime.now(UTC),
        tz or get_settings().tzinfo,
        ACTIVITY_MONTHS,
    )
    requests_per_month = count_by_month(months, (r.created_at for r in owned.values()))
    donations_per_month = count_by_month(months, (d.assigned_at for d in counted))
    activity = [
        MonthlyActivity(
            label=month.label,
            requests_created=requests_per_month[i],
            donations_received=donations_per_month[i],
        )
        for i, month in enumerate(months)
    ]

    return FulfillmentReport(
        organization_id=organization_id,
        requests=items,
        totals=totals,
        urgent_requests=urgent_open_requests(owned.values(), received),
        activity=activity,
    )


async def get_fulfillment_report(
    db: AsyncSession,
    organization_id: str,
    now: Optional[datetime] = None,
) -> FulfillmentReport:
    """Load the organization's requests and assigned donations and reconcile them.

    Args:
        db: Database session
        organization_id: Organization to report on
        now: Reference instant for the monthly series

    Returns:
        FulfillmentReport reflecting the store at read time
    """
    requests_result = await db.execute(
        select(NeedRequest)
        .where(NeedRequest.organization_id == organization_id)
        .order_by(NeedRequest.created_at.desc())
    )
    requests = list(requests_result.scalars().all())

    donations_result = await db.execute(
        select(Donation)
        .where(Donation.assigned_organization_id == organization_id)
        .order_by(Donation.assigned_at.asc())
    )
    donations = list(donations_result.scalars().all())

    return reconcile(organization_id, requests, donations, now=now)
