"""
Admin Operations API Endpoints.

Notification dead letters, statistics cache, the administrative audit
log and stored unhandled errors.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.config import settings
from motorpool.app.core.exceptions import NotFoundError
from motorpool.app.core.guards import require_processor
from motorpool.app.core.redis_client import get_redis
from motorpool.app.db.session import get_db
from motorpool.app.models.dlq import NotificationDeadLetter, DLQStatus
from motorpool.app.schemas.admin import (
    DeadLetterResponse, DeadLetterRetryResponse, AuditLogResponse, AuditLogListResponse,
    ErrorLogResponse, ErrorLogListResponse,
)
from motorpool.app.services.audit import log_event, get_audit_trail, AuditAction
from motorpool.app.services.error_log import list_errors
from motorpool.app.services.notifications import NotificationDispatcher, get_notification_dispatcher
from motorpool.app.services.statistics import StatsCache

router = APIRouter(prefix="/admin/ops", tags=["Admin - Ops"])


@router.get("/notification-failures", response_model=List[DeadLetterResponse])
async def list_notification_failures(
    status_filter: Optional[DLQStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    """Notices the notifier could not deliver, newest first."""
    query = select(NotificationDeadLetter).order_by(NotificationDeadLetter.id.desc()).limit(limit)
    if status_filter is not None:
        query = query.where(NotificationDeadLetter.status == status_filter)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/notification-failures/{dead_letter_id}/retry", response_model=DeadLetterRetryResponse)
async def retry_notification(
    dead_letter_id: int = Path(..., description="Dead letter ID"),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Re-send a dead-lettered notice through the configured notifier."""
    result = await db.execute(
        select(NotificationDeadLetter).where(NotificationDeadLetter.id == dead_letter_id)
    )
    dead_letter = result.scalar_one_or_none()
    if not dead_letter:
        raise NotFoundError("Notification dead letter", dead_letter_id)
    
    await log_event(
        db,
        action=AuditAction.NOTIFICATION_RETRIED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
        target_type="dead_letter",
        target_id=dead_letter.id,
        metadata={"event": dead_letter.event, "booking_code": dead_letter.booking_code},
    )
    delivered = await dispatcher.retry(db, dead_letter)
    return DeadLetterRetryResponse(
        delivered=delivered,
        dead_letter=DeadLetterResponse.model_validate(dead_letter),
    )


@router.post("/clear-cache")
async def clear_stats_cache(
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Drop the cached dashboard statistics."""
    await StatsCache(redis, settings.stats_cache_ttl_seconds).invalidate()
    await log_event(
        db,
        action=AuditAction.STATS_CACHE_CLEARED,
        actor_id=current_user["user_id"],
        actor_username=current_user["sub"],
    )
    await db.commit()
    return {"message": "Cache cleared successfully"}


@router.get("/audit-log", response_model=AuditLogListResponse)
async def list_audit_log(
    target_type: Optional[str] = Query(None, description="driver, vehicle, dead_letter"),
    target_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    """Administrative actions, most recent first."""
    entries = await get_audit_trail(db, target_type=target_type, target_id=target_id, action=action, limit=limit)
    return AuditLogListResponse(entries=[AuditLogResponse.model_validate(e) for e in entries])


@router.get("/errors", response_model=ErrorLogListResponse)
async def list_system_errors(
    error_type: Optional[str] = Query(None, description="Exception class name"),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_processor),
    db: AsyncSession = Depends(get_db),
):
    """Unhandled exceptions, most recent first."""
    errors = await list_errors(db, error_type=error_type, limit=limit)
    return ErrorLogListResponse(errors=[ErrorLogResponse.model_validate(e) for e in errors])
