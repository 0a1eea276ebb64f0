"""
Booking read queries.

BookingFilter is the single query contract: every field is optional and
independently combinable. Results are ordered pending first, then by
booking code.
"""

from dataclasses import dataclass
from datetime import date, tzinfo
from typing import List, Optional, Tuple

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.core.exceptions import NotFoundError
from motorpool.app.domain.booking.trip_interval import day_window
from motorpool.app.models.booking import Booking
from motorpool.app.models.enums import BookingStatus


@dataclass
class BookingFilter:
    status: Optional[BookingStatus] = None
    requester_id: Optional[int] = None
    driver_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    booking_code: Optional[str] = None
    applicant_name: Optional[str] = None  # substring, case-insensitive
    destination: Optional[str] = None  # substring, case-insensitive
    purpose: Optional[str] = None  # substring, case-insensitive
    overlaps_from: Optional[date] = None
    overlaps_to: Optional[date] = None
    limit: int = 50
    offset: int = 0


def _contains(column, text: str):
    return func.lower(column).contains(text.lower(), autoescape=True)


def build_conditions(criteria: BookingFilter, tz: tzinfo) -> list:
    conditions = []
    
    if criteria.status is not None:
        conditions.append(Booking.status == criteria.status)
    if criteria.requester_id is not None:
        conditions.append(Booking.requester_id == criteria.requester_id)
    if criteria.driver_id is not None:
        conditions.append(Booking.driver_id == criteria.driver_id)
    if criteria.vehicle_id is not None:
        conditions.append(Booking.vehicle_id == criteria.vehicle_id)
    if criteria.booking_code:
        conditions.append(Booking.booking_code == criteria.booking_code)
    if criteria.applicant_name:
        conditions.append(_contains(Booking.applicant_name, criteria.applicant_name))
    if criteria.destination:
        conditions.append(_contains(Booking.destination, criteria.destination))
    if criteria.purpose:
        conditions.append(_contains(Booking.purpose, criteria.purpose))
    
    # Date-overlap window over whole civil days; either end may be open
    if criteria.overlaps_from or criteria.overlaps_to:
        window_start, window_end = day_window(
            criteria.overlaps_from or criteria.overlaps_to,
            criteria.overlaps_to or criteria.overlaps_from,
            tz,
        )
        if criteria.overlaps_to:
            conditions.append(Booking.departure_at < window_end)
        if criteria.overlaps_from:
            conditions.append(Booking.return_at > window_start)
    
    return conditions


async def search_bookings(db: AsyncSession, criteria: BookingFilter, tz: tzinfo) -> Tuple[List[Booking], int]:
    """
    Bookings matching every set field of `criteria`.
    
    Returns:
        (page of bookings, total matching count)
    """
    conditions = build_conditions(criteria, tz)
    
    total = (await db.execute(select(func.count(Booking.id)).where(*conditions))).scalar() or 0
    
    pending_first = case((Booking.status == BookingStatus.PENDING, 0), else_=1)
    query = (
        select(Booking)
        .where(*conditions)
        .order_by(pending_first, Booking.booking_code)
        .offset(criteria.offset)
        .limit(criteria.limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Raises NotFoundError if the booking does not exist."""
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking", booking_id)
    return booking


async def get_booking_by_code(db: AsyncSession, booking_code: str) -> Booking:
    result = await db.execute(select(Booking).where(Booking.booking_code == booking_code))
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking", booking_code)
    return booking
