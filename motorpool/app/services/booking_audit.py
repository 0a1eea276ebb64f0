"""
Booking audit trail.

Every transition appends one BookingAuditEntry holding the booking's
state before and after. Entries are flushed on the caller's session and
become durable with the transition's commit, never separately.
"""

import enum
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from motorpool.app.models.booking import Booking
from motorpool.app.models.booking_audit import BookingAuditEntry
from motorpool.app.models.enums import BookingAuditAction

SNAPSHOT_FIELDS = (
    "booking_code",
    "status",
    "departure_at",
    "return_at",
    "destination",
    "purpose",
    "notes",
    "passenger_name",
    "passenger_count",
    "driver_id",
    "vehicle_id",
    "driver_must_wait",
    "rejection_reason",
    "admin_notes",
    "processed_at",
    "processed_by_id",
    "modified_at",
)


def _json_value(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def booking_snapshot(booking: Booking) -> Dict[str, Any]:
    """JSON-safe copy of the fields a transition can change."""
    return {field: _json_value(getattr(booking, field)) for field in SNAPSHOT_FIELDS}


async def record_transition(
    db: AsyncSession,
    booking: Booking,
    actor_id: int,
    action: BookingAuditAction,
    old_values: Optional[Dict[str, Any]],
    at: datetime,
) -> BookingAuditEntry:
    """
    Append an audit entry for `booking`'s current state.
    
    Args:
        db: The transition's session (not committed here)
        booking: Booking after the transition was applied
        actor_id: User performing the transition
        action: Transition tag
        old_values: Snapshot taken before the transition (None on creation)
        at: Transition instant, from the workflow clock
    """
    entry = BookingAuditEntry(
        booking_id=booking.id,
        actor_id=actor_id,
        action=action,
        old_values=old_values,
        new_values=booking_snapshot(booking),
        timestamp=at,
    )
    db.add(entry)
    await db.flush()
    return entry


async def get_booking_history(db: AsyncSession, booking_id: int) -> List[BookingAuditEntry]:
    """Audit entries for a booking in transition order."""
    result = await db.execute(
        select(BookingAuditEntry)
        .where(BookingAuditEntry.booking_id == booking_id)
        .order_by(BookingAuditEntry.timestamp, BookingAuditEntry.id)
    )
    return list(result.scalars().all())
