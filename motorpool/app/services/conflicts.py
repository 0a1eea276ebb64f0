"""
Conflict queries.

The half-open overlap rule from domain.booking.overlap, pushed down into
SQL so only overlapping approved bookings are loaded.
"""

from typing import List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.domain.booking.overlap import ConflictCandidate
from motorpool.app.models.booking import Booking
from motorpool.app.models.enums import BookingStatus


async def find_conflicts(
    db: AsyncSession,
    candidate: ConflictCandidate,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    """
    Approved bookings overlapping the candidate's interval on its driver or vehicle.
    
    Returns every conflict, ordered by departure. Empty when the candidate
    names no resource.
    """
    if candidate.is_unconstrained:
        return []
    
    shares_resource = []
    if candidate.driver_id is not None:
        shares_resource.append(Booking.driver_id == candidate.driver_id)
    if candidate.vehicle_id is not None:
        shares_resource.append(Booking.vehicle_id == candidate.vehicle_id)
    
    query = select(Booking).where(
        Booking.status == BookingStatus.APPROVED,
        Booking.departure_at < candidate.end,
        Booking.return_at > candidate.start,
        or_(*shares_resource),
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    
    query = query.order_by(Booking.departure_at, Booking.id).execution_options(populate_existing=True)
    
    result = await db.execute(query)
    return list(result.scalars().all())
