"""
Role guards for booking and resource endpoints.

Ownership checks for individual bookings live in the workflow and the
bookings endpoints, since they need the loaded row.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from motorpool.app.models.enums import UserRole, PROCESSOR_ROLES
from motorpool.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.
    
    Usage:
        @router.post("/drivers")
        async def create_driver(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...
    
    Raises:
        HTTPException 403 if the user's role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        try:
            user_role = UserRole(current_user.get("role"))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role"
            )
        
        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )
        
        return current_user
    
    return role_checker


# Approve / reject / resource management
require_processor = require_role(list(PROCESSOR_ROLES))

# Modify after processing
require_superadmin = require_role([UserRole.SUPERADMIN])


def is_processor(current_user: dict) -> bool:
    return current_user.get("role") in {r.value for r in PROCESSOR_ROLES}
