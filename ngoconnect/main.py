"""FastAPI application entry point."""

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ngoconnect import __version__
from ngoconnect.api.deps import get_current_principal
from ngoconnect.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from ngoconnect.api.routes import (
    donations,
    metrics,
    notifications,
    organizations,
    registrations,
    requests,
)
from ngoconnect.core.config import get_settings
from ngoconnect.core.security import Principal
from ngoconnect.core.structured_logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

docs_enabled = settings.api_docs_enabled
if docs_enabled is None:
    docs_enabled = settings.environment != "production"

app = FastAPI(
    title="NGOConnect API",
    description="NGO verification and donation fulfillment API",
    version=__version__,
    docs_url="/api/docs" if docs_enabled else None,
    redoc_url="/api/redoc" if docs_enabled else None,
    openapi_url="/api/openapi.json" if docs_enabled else None,
)

# The last middleware added runs first: request logging wraps everything else
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/api/me", tags=["auth"])
async def get_current_principal_info(principal: Principal = Depends(get_current_principal)):
    """Identity as read from the bearer token."""
    return {"id": principal.id, "role": principal.role.value}


app.include_router(registrations.router, prefix="/api/registrations", tags=["registrations"])
app.include_router(requests.router, prefix="/api/requests", tags=["requests"])
app.include_router(donations.router, prefix="/api/donations", tags=["donations"])
app.include_router(organizations.router, prefix="/api/organizations", tags=["organizations"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(metrics.router, prefix="/api", tags=["metrics"])
