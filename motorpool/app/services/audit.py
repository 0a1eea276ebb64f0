"""
Audit logging service for administrative actions.

Covers driver / vehicle management, user administration and operator
actions. Booking transitions are recorded separately by services.booking_audit.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from motorpool.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    DRIVER_CREATED = "DRIVER_CREATED"
    DRIVER_UPDATED = "DRIVER_UPDATED"
    DRIVER_DEACTIVATED = "DRIVER_DEACTIVATED"
    DRIVER_REACTIVATED = "DRIVER_REACTIVATED"
    
    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_DEACTIVATED = "VEHICLE_DEACTIVATED"
    VEHICLE_REACTIVATED = "VEHICLE_REACTIVATED"
    
    USER_UPDATED = "USER_UPDATED"
    
    NOTIFICATION_RETRIED = "NOTIFICATION_RETRIED"
    STATS_CACHE_CLEARED = "STATS_CACHE_CLEARED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an administrative event to the audit log.
    
    The entry is flushed on the caller's session so it commits together
    with the change it describes.
    
    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        target_type: "driver", "vehicle", "dead_letter", ...
        target_id: ID of the row acted upon
        metadata: Additional context as JSON
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        target_type=target_type,
        target_id=target_id,
        meta_data=metadata,
    )
    
    db.add(audit_log)
    await db.flush()
    
    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> List[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    
    if target_type:
        query = query.where(AuditLog.target_type == target_type)
    
    if target_id is not None:
        query = query.where(AuditLog.target_id == target_id)
    
    if action:
        query = query.where(AuditLog.action == action)
    
    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())
