"""
User administration.

Processors list staff accounts and change their role, unit or active
flag. Roles are re-read on every request, so changes apply to tokens
already issued.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from motorpool.app.models.enums import UserRole
from motorpool.app.models.user import User
from motorpool.app.services.audit import AuditAction, log_event

logger = logging.getLogger("motorpool.users")


async def list_users(
    db: AsyncSession,
    role: Optional[UserRole] = None,
    active_only: bool = False,
) -> List[User]:
    query = select(User).order_by(User.id)
    if role is not None:
        query = query.where(User.role == role)
    if active_only:
        query = query.where(User.is_active == True)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def update_user(db: AsyncSession, user_id: int, fields: dict, actor: dict) -> User:
    """
    Apply role / unit / is_active changes and log them.
    
    Rules:
        - Only a SUPERADMIN may grant or revoke SUPERADMIN
        - Nobody may change their own role or deactivate themselves
    
    Only fields whose value actually changes are written and audited.
    
    Raises:
        NotFoundError: unknown user
        AuthorizationError: the rules above
    """
    user = await get_user(db, user_id)
    
    changes = {key: value for key, value in fields.items() if getattr(user, key) != value}
    if not changes:
        return user
    
    if "role" in changes:
        if user.id == actor.get("user_id"):
            raise AuthorizationError("You cannot change your own role")
        if UserRole.SUPERADMIN in (user.role, changes["role"]) and actor.get("role") != UserRole.SUPERADMIN.value:
            raise AuthorizationError("Only a SUPERADMIN can grant or revoke SUPERADMIN")
    
    if changes.get("is_active") is False and user.id == actor.get("user_id"):
        raise ValidationError("You cannot deactivate your own account", details={"user_id": user.id})
    
    previous = {key: _plain(getattr(user, key)) for key in changes}
    for key, value in changes.items():
        setattr(user, key, value)
    
    await log_event(
        db,
        action=AuditAction.USER_UPDATED,
        actor_id=actor.get("user_id"),
        actor_username=actor.get("sub"),
        target_type="user",
        target_id=user.id,
        metadata={"from": previous, "to": {key: _plain(value) for key, value in changes.items()}},
    )
    await db.commit()
    await db.refresh(user)
    
    logger.info("User %s updated by %s: %s", user.username, actor.get("sub"), sorted(changes))
    return user


def _plain(value):
    return value.value if isinstance(value, UserRole) else value
