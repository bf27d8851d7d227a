"""
Authentication dependencies for FastAPI.

The back office trusts the identity in a valid bearer token. Access-control
policy lives outside this service; routes only need to know who acts.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from backoffice.app.core.jwt import decode_actor_token

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Args:
        credentials: HTTP Bearer token from request header

    Returns:
        Verified token claims, always including `sub`

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no subject
    """
    claims = decode_actor_token(credentials.credentials)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


async def get_actor_id(current_user: dict = Depends(get_current_user)) -> str:
    """Opaque actor id recorded on postings, transitions and audit rows."""
    return str(current_user["sub"])
