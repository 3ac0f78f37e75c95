from schemas.common import Principal
from services.exceptions import AccessDeniedError


def ensure_role(principal: Principal, *roles: str):
    if principal.role not in roles:
        raise AccessDeniedError(f"Access denied. Requires role: {', '.join(roles)}.")
