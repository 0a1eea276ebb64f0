"""
Interval Overlap Engine.

A candidate conflicts with an obstacle when their intervals overlap and
they share a driver or a vehicle. Intervals are half-open [start, end):
a trip ending at 12:00 and one starting at 12:00 do not conflict.

Only approved bookings are obstacles. A candidate naming neither a
driver nor a vehicle has nothing to conflict over and never conflicts.

services.conflicts runs the same predicate as a SQL query; the
functions here work on any objects with departure_at / return_at /
driver_id / vehicle_id / status / id attributes.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from motorpool.app.models.enums import BookingStatus


@dataclass(frozen=True)
class ConflictCandidate:
    start: datetime
    end: datetime
    driver_id: Optional[int] = None
    vehicle_id: Optional[int] = None

    @property
    def is_unconstrained(self) -> bool:
        return self.driver_id is None and self.vehicle_id is None


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open overlap: touching endpoints do not overlap."""
    return start_a < end_b and start_b < end_a


def conflicting_resources(candidate: ConflictCandidate, obstacle) -> List[str]:
    """
    Resources the candidate and obstacle collide on.
    
    Returns a subset of ["driver", "vehicle"]; empty when the intervals
    do not overlap or no resource is shared.
    """
    if candidate.is_unconstrained:
        return []
    if not intervals_overlap(candidate.start, candidate.end, obstacle.departure_at, obstacle.return_at):
        return []
    
    resources = []
    if candidate.driver_id is not None and candidate.driver_id == obstacle.driver_id:
        resources.append("driver")
    if candidate.vehicle_id is not None and candidate.vehicle_id == obstacle.vehicle_id:
        resources.append("vehicle")
    return resources


def find_conflicts_in(
    candidate: ConflictCandidate,
    bookings: Iterable,
    exclude_booking_id: Optional[int] = None,
) -> list:
    """Every approved booking in `bookings` that conflicts with the candidate."""
    if candidate.is_unconstrained:
        return []
    return [
        booking
        for booking in bookings
        if booking.status == BookingStatus.APPROVED
        and booking.id != exclude_booking_id
        and conflicting_resources(candidate, booking)
    ]


def conflict_summary(candidate: ConflictCandidate, booking) -> dict:
    """JSON-safe description of one conflict, for error details."""
    return {
        "booking_id": booking.id,
        "booking_code": booking.booking_code,
        "departure_at": booking.departure_at.isoformat(),
        "return_at": booking.return_at.isoformat(),
        "driver_id": booking.driver_id,
        "vehicle_id": booking.vehicle_id,
        "resources": conflicting_resources(candidate, booking),
    }
