"""
Caller identity supplied by the gateway.

Authentication happens upstream; the gateway forwards the verified user id
and role as headers.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from .models import UserRole


@dataclass(frozen=True)
class Caller:
    user_id: Optional[int]
    role: UserRole


def get_caller(
    x_user_role: Optional[str] = Header(None),
    x_user_id: Optional[int] = Header(None),
) -> Caller:
    """Dependency to get the authenticated caller"""
    if not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    try:
        role = UserRole(x_user_role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role: {x_user_role}"
        )
    return Caller(user_id=x_user_id, role=role)


def require_role(*allowed_roles: UserRole):
    """Dependency factory to require specific roles"""
    def role_checker(caller: Caller = Depends(get_caller)):
        if caller.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(r.value for r in allowed_roles)}"
            )
        return caller
    return role_checker
