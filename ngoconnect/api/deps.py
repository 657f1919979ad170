"""FastAPI dependencies for authentication and authorization."""
from collections.abc import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ngoconnect.core.security import Principal, decode_token, principal_from_claims
from ngoconnect.models.enums import PrincipalRole

# HTTP Bearer token security scheme
security = HTTPBearer()


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """Get the authenticated caller from the identity-provider token.

    The provider owns accounts, so there is no local user lookup: the token's
    ``sub`` and ``role`` claims are trusted once the signature verifies.

    Raises:
        HTTPException: 401 if the token is invalid, expired or lacks a subject
    """
    payload = decode_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    principal = principal_from_claims(payload)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return principal


def require_role(*roles: PrincipalRole) -> Callable:
    """Dependency factory for role-based access control.

    Args:
        roles: Roles allowed to call the endpoint

    Returns:
        FastAPI dependency function

    Example:
        @router.post("/donations")
        async def submit_donation(
            principal: Principal = Depends(require_role(PrincipalRole.DONOR))
        ):
            pass
    """

    async def check_role(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Requires one of: {allowed}.",
            )
        return principal

    return check_role


def require_admin() -> Callable:
    return require_role(PrincipalRole.ADMIN)


def require_ngo() -> Callable:
    return require_role(PrincipalRole.NGO)


def require_donor() -> Callable:
    return require_role(PrincipalRole.DONOR)
