"""Prometheus scrape endpoint."""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ngoconnect.core.config import get_settings
from ngoconnect.core.exceptions import NotFoundError, PermissionDenied

router = APIRouter()


def _presented_token(authorization: str | None, x_metrics_token: str | None) -> str | None:
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return x_metrics_token


async def verify_scrape_access(
    authorization: str | None = Header(default=None),
    x_metrics_token: str | None = Header(default=None, alias="X-Metrics-Token"),
) -> None:
    """Gate scrapes in production.

    Without a configured ``METRICS_TOKEN`` the endpoint does not exist there;
    with one, the scraper must present it as a bearer token or in
    ``X-Metrics-Token``. Development scrapes are open.
    """
    settings = get_settings()
    if settings.environment != "production":
        return

    expected = settings.metrics_token
    if not expected:
        raise NotFoundError("Not found")

    token = _presented_token(authorization, x_metrics_token)
    if not token or not hmac.compare_digest(token, expected):
        raise PermissionDenied("Invalid metrics token")


@router.get(
    "/metrics",
    include_in_schema=False,
    dependencies=[Depends(verify_scrape_access)],
)
async def metrics_endpoint() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
