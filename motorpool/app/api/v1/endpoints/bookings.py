"""
Booking API Endpoints.

Thin adapter over BookingWorkflow: request bodies in, booking responses
out. Requesters see their own bookings; ADMIN and SUPERADMIN see all.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.config import settings
from motorpool.app.core.dependencies import get_current_user
from motorpool.app.core.exceptions import AuthorizationError
from motorpool.app.core.guards import require_processor, require_superadmin, is_processor
from motorpool.app.core.redis_client import get_redis
from motorpool.app.db.session import get_db
from motorpool.app.db.types import utcnow
from motorpool.app.domain.booking.overlap import ConflictCandidate
from motorpool.app.domain.booking.trip_interval import trip_interval
from motorpool.app.domain.calendar.working_days import processing_time
from motorpool.app.models.booking import Booking
from motorpool.app.models.enums import BookingStatus
from motorpool.app.schemas.booking import (
    BookingCreate, BookingResponse, BookingListResponse, BookingAuditEntryResponse,
    ApproveRequest, RejectRequest, ModifyRequest,
    ConflictCheckRequest, ConflictCheckResponse,
)
from motorpool.app.services.booking_audit import get_booking_history
from motorpool.app.services.booking_queries import BookingFilter, search_bookings, get_booking, get_booking_by_code
from motorpool.app.services.booking_workflow import Actor, BookingWorkflow
from motorpool.app.services.notifications import NotificationDispatcher, get_notification_dispatcher
from motorpool.app.services.statistics import StatsCache

router = APIRouter(prefix="/bookings", tags=["Bookings"])


async def get_booking_workflow(
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    redis=Depends(get_redis),
) -> BookingWorkflow:
    return BookingWorkflow(
        db,
        dispatcher,
        stats_cache=StatsCache(redis, settings.stats_cache_ttl_seconds),
    )


def to_response(booking: Booking, now: Optional[datetime] = None) -> BookingResponse:
    """Serialize a booking with its processing-time flags."""
    elapsed = processing_time(
        booking.submitted_at,
        booking.processed_at,
        booking.modified_at,
        now or utcnow(),
        holidays=settings.holiday_set,
        tz=settings.reference_tz,
        sla_working_days=settings.processing_sla_working_days,
    )
    return BookingResponse.model_validate(booking).model_copy(update={
        "processing_working_days": elapsed.working_days,
        "is_overdue": elapsed.is_overdue,
    })


def ensure_can_view(booking: Booking, current_user: dict):
    if booking.requester_id != current_user["user_id"] and not is_processor(current_user):
        raise AuthorizationError("You can only view your own bookings")


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    current_user: dict = Depends(get_current_user),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    """
    Submit a booking request.
    
    The booking starts pending and gets the next code for the current year.
    """
    booking = await workflow.create(Actor.from_current_user(current_user), data)
    return to_response(booking)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    requester_id: Optional[int] = Query(None),
    driver_id: Optional[int] = Query(None),
    vehicle_id: Optional[int] = Query(None),
    booking_code: Optional[str] = Query(None, max_length=5),
    applicant_name: Optional[str] = Query(None),
    destination: Optional[str] = Query(None),
    purpose: Optional[str] = Query(None),
    overlaps_from: Optional[date] = Query(None, description="Bookings ending on or after this day"),
    overlaps_to: Optional[date] = Query(None, description="Bookings starting on or before this day"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List bookings, pending first then by booking code.
    
    Requesters are always restricted to their own bookings.
    """
    if not is_processor(current_user):
        requester_id = current_user["user_id"]
    
    criteria = BookingFilter(
        status=status_filter,
        requester_id=requester_id,
        driver_id=driver_id,
        vehicle_id=vehicle_id,
        booking_code=booking_code,
        applicant_name=applicant_name,
        destination=destination,
        purpose=purpose,
        overlaps_from=overlaps_from,
        overlaps_to=overlaps_to,
        limit=limit,
        offset=offset,
    )
    bookings, total = await search_bookings(db, criteria, settings.reference_tz)
    
    now = utcnow()
    return BookingListResponse(
        bookings=[to_response(b, now) for b in bookings],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/conflicts", response_model=ConflictCheckResponse)
async def check_conflicts(
    data: ConflictCheckRequest,
    current_user: dict = Depends(require_processor),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    """Approved bookings that would collide with the given interval and resources."""
    start, end = trip_interval(
        data.departure_date, data.departure_time, data.return_date, data.return_time, settings.reference_tz
    )
    candidate = ConflictCandidate(start=start, end=end, driver_id=data.driver_id, vehicle_id=data.vehicle_id)
    conflicts = await workflow.check_conflicts(candidate, data.exclude_booking_id)
    return ConflictCheckResponse(has_conflicts=bool(conflicts), conflicts=conflicts)


@router.get("/code/{booking_code}", response_model=BookingResponse)
async def get_booking_by_booking_code(
    booking_code: str = Path(..., min_length=5, max_length=5),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking_by_code(db, booking_code)
    ensure_can_view(booking, current_user)
    return to_response(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_detail(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking(db, booking_id)
    ensure_can_view(booking, current_user)
    return to_response(booking)


@router.get("/{booking_id}/history", response_model=List[BookingAuditEntryResponse])
async def get_history(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail of the booking in transition order."""
    booking = await get_booking(db, booking_id)
    ensure_can_view(booking, current_user)
    return await get_booking_history(db, booking_id)


@router.post("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    data: ApproveRequest,
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_processor),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    """
    Approve a pending booking with a driver and vehicle.
    
    Responds 409 with every conflicting booking when either resource is
    already committed over an overlapping interval.
    """
    booking = await workflow.approve(
        booking_id,
        Actor.from_current_user(current_user),
        driver_id=data.driver_id,
        vehicle_id=data.vehicle_id,
        driver_must_wait=data.driver_must_wait,
        admin_notes=data.admin_notes,
    )
    return to_response(booking)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    data: RejectRequest,
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_processor),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    booking = await workflow.reject(booking_id, Actor.from_current_user(current_user), data.reason)
    return to_response(booking)


@router.put("/{booking_id}/modify", response_model=BookingResponse)
async def modify_booking(
    data: ModifyRequest,
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_superadmin),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    """Re-open a processed booking: overwrite its status and assignment."""
    booking = await workflow.modify(
        booking_id,
        Actor.from_current_user(current_user),
        status=data.status,
        driver_id=data.driver_id,
        vehicle_id=data.vehicle_id,
        driver_must_wait=data.driver_must_wait,
        rejection_reason=data.rejection_reason,
        admin_notes=data.admin_notes,
    )
    return to_response(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(get_current_user),
    workflow: BookingWorkflow = Depends(get_booking_workflow),
):
    """Withdraw your own pending or approved booking before departure."""
    booking = await workflow.cancel(booking_id, Actor.from_current_user(current_user))
    return to_response(booking)
