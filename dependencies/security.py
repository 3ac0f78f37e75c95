from typing import Optional, Annotated
from fastapi import Depends, Header, HTTPException
from pydantic import ValidationError as SchemaError
from config.settings import settings
from schemas.common import Principal
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]
IdentityHeader = Annotated[Optional[str], Header()]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def require_internal_token(authorization: AuthHeader = None):
    """Only the upstream gateway holds INTERNAL_API_TOKEN; it vouches for the X-User-* headers."""
    if not settings.INTERNAL_API_TOKEN:
        raise HTTPException(status_code=500, detail="Server token not configured")
    if not authorization:
        raise _unauthorized("Missing Authorization header")

    # "Bearer <token>"
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Invalid Authorization header format")

    # constant-time comparison
    if not hmac.compare_digest(token.strip(), settings.INTERNAL_API_TOKEN):
        raise _unauthorized("Invalid token")

    return {"client": "gateway"}


def get_principal(
    x_user_id: IdentityHeader = None,
    x_school_id: IdentityHeader = None,
    x_user_role: IdentityHeader = None,
    _client: dict = Depends(require_internal_token),
) -> Principal:
    if not (x_user_id and x_school_id and x_user_role):
        raise _unauthorized("Missing caller identity headers")
    try:
        return Principal(user_id=x_user_id, school_id=x_school_id, role=x_user_role.lower())
    except SchemaError:
        raise _unauthorized("Invalid caller identity headers")


CurrentPrincipal = Annotated[Principal, Depends(get_principal)]
