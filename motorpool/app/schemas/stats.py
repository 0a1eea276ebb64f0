"""
Dashboard statistics schema.
"""

from pydantic import BaseModel


class BookingStats(BaseModel):
    """Booking counts by status plus vehicle availability."""
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    cancelled: int = 0
    active_vehicles: int = 0
    total_vehicles: int = 0
    vehicle_availability: float = 0.0  # active / total
    available_vehicles: str = "0/0"
