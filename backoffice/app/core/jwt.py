"""
JWT helpers for actor identity.

Production tokens are issued by the company's identity provider; this
service only needs the subject, which becomes the actor id stamped on
postings, workflow transitions and audit rows. `issue_actor_token` exists
for tooling, the debug token endpoint and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backoffice.app.core.config import settings


def issue_actor_token(actor_id: str, expires_delta: Optional[timedelta] = None, **claims: Any) -> str:
    """
    Sign a bearer token for an actor.

    Args:
        actor_id: Opaque actor id, stored as `sub`
        expires_delta: Lifetime, defaults to access_token_expire_minutes
        **claims: Extra claims copied into the payload

    Returns:
        Encoded JWT
    """
    if not actor_id:
        raise ValueError("actor_id is required")

    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {**claims, "sub": str(actor_id), "exp": datetime.now(timezone.utc) + lifetime}
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_actor_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a bearer token and return its claims.

    Signature and expiry are always checked; the issuer only when
    `jwt_issuer` is configured. Returns None for any invalid token or one
    without a subject.
    """
    options = {}
    kwargs = {}
    if settings.jwt_issuer:
        kwargs["issuer"] = settings.jwt_issuer
    else:
        options["verify_iss"] = False

    try:
        claims = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm], options=options, **kwargs
        )
    except JWTError:
        return None

    if not claims.get("sub"):
        return None
    return claims
