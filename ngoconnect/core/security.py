"""Identity-provider token handling.

Principals are authenticated upstream; this service only verifies the token
signature and reads the ``sub`` and ``role`` claims. The subject is an opaque,
stable identifier used verbatim as ``organization_id`` / ``donor_id``.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from jwt import exceptions as jwt_exceptions

from ngoconnect.core.config import get_settings
from ngoconnect.models.enums import PrincipalRole

settings = get_settings()


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""

    id: str
    role: PrincipalRole

    @property
    def is_admin(self) -> bool:
        return self.role == PrincipalRole.ADMIN


def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a token the way the identity provider does.

    Used by local tooling and tests; production tokens come from the provider.

    Args:
        data: Claims to encode (``sub`` and ``role`` expected)
        expires_delta: Lifetime, 30 minutes by default

    Returns:
        Encoded JWT
    """
    to_encode = data.copy()
    expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=30))
    to_encode.update({"exp": expire, "iat": datetime.now(UTC)})
    if settings.jwt_audience:
        to_encode.setdefault("aud", settings.jwt_audience)
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    """Verify and decode a bearer token.

    Returns:
        Claims dict, or None if the token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt_exceptions.PyJWTError:
        return None


def principal_from_claims(claims: dict) -> Principal | None:
    """Build a Principal from decoded claims, or None if they are unusable."""
    subject = claims.get("sub")
    if not subject or not isinstance(subject, str):
        return None
    try:
        role = PrincipalRole(claims.get("role", PrincipalRole.DONOR.value))
    except ValueError:
        return None
    return Principal(id=subject, role=role)
