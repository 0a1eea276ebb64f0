"""
Booking Pydantic schemas.

Request bodies for the booking transitions and response models for
bookings, conflicts and the audit trail.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from motorpool.app.models.enums import BookingAuditAction, BookingStatus


class BookingCreate(BaseModel):
    """Schema for submitting a booking request."""
    departure_date: date
    departure_time: Optional[time] = Field(None, description="Omitted: start of the departure day")
    return_date: date
    return_time: Optional[time] = Field(None, description="Omitted: the whole return day is booked")
    
    destination: str = Field(..., min_length=1, max_length=255)
    purpose: str = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=255, description="Bounded by settings.notes_max_length")
    passenger_name: Optional[str] = None
    passenger_count: int = Field(1, ge=1)
    
    # Default to the requester's profile
    applicant_name: Optional[str] = Field(None, max_length=255)
    applicant_unit: Optional[str] = Field(None, max_length=255)
    applicant_email: Optional[EmailStr] = None


class ApproveRequest(BaseModel):
    """Schema for approving a pending booking."""
    driver_id: int
    vehicle_id: int
    driver_must_wait: Optional[bool] = None
    admin_notes: Optional[str] = None


class RejectRequest(BaseModel):
    """Schema for rejecting a pending booking."""
    reason: str = Field(..., min_length=1)


class ModifyRequest(BaseModel):
    """Schema for re-opening a processed booking (SUPERADMIN)."""
    status: BookingStatus
    driver_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    driver_must_wait: Optional[bool] = None
    rejection_reason: Optional[str] = None
    admin_notes: Optional[str] = None


class ConflictCheckRequest(BaseModel):
    """Candidate interval and resources to check against approved bookings."""
    departure_date: date
    departure_time: Optional[time] = None
    return_date: date
    return_time: Optional[time] = None
    driver_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    exclude_booking_id: Optional[int] = None


class ConflictSummary(BaseModel):
    booking_id: int
    booking_code: str
    departure_at: datetime
    return_at: datetime
    driver_id: Optional[int]
    vehicle_id: Optional[int]
    resources: List[str]


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: List[ConflictSummary]


class BookingResponse(BaseModel):
    """Schema for booking response."""
    id: int
    booking_code: str
    requester_id: int
    applicant_name: str
    applicant_email: Optional[str]
    applicant_unit: str
    
    departure_date: date
    departure_time: Optional[time]
    return_date: date
    return_time: Optional[time]
    departure_at: datetime
    return_at: datetime
    
    destination: str
    purpose: str
    notes: Optional[str]
    passenger_name: Optional[str]
    passenger_count: int
    
    status: BookingStatus
    driver_id: Optional[int]
    vehicle_id: Optional[int]
    driver_must_wait: Optional[bool]
    rejection_reason: Optional[str]
    admin_notes: Optional[str]
    
    submitted_at: datetime
    processed_at: Optional[datetime]
    processed_by_id: Optional[int]
    modified_at: Optional[datetime]
    
    # Filled in by the endpoint from the working-day calculator
    processing_working_days: int = 0
    is_overdue: bool = False
    
    class Config:
        from_attributes = True


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""
    bookings: List[BookingResponse]
    total: int
    limit: int
    offset: int


class BookingAuditEntryResponse(BaseModel):
    id: int
    booking_id: int
    actor_id: int
    action: BookingAuditAction
    old_values: Optional[Dict[str, Any]]
    new_values: Dict[str, Any]
    timestamp: datetime
    
    class Config:
        from_attributes = True
