"""
Booking database model.

A booking is a request to use a pool driver and vehicle over a time
interval. departure_at / return_at are the derived UTC instants every
range query runs against; the date and optional time fields are kept as
the requester entered them.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, Time, ForeignKey, Enum, CheckConstraint
)
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime
from motorpool.app.models.enums import BookingStatus


class Booking(Base):
    """
    Booking model.
    
    Invariants enforced by the workflow:
    - return_at > departure_at (also a CHECK constraint)
    - driver_id / vehicle_id are set only while status is APPROVED
    - booking_code is unique and never changes
    """
    __tablename__ = "bookings"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    booking_code = Column(String(5), unique=True, nullable=False, index=True)  # YY + 3-digit sequence
    
    # Requester
    requester_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    applicant_name = Column(String(255), nullable=False)
    applicant_email = Column(String(255), nullable=True)
    applicant_unit = Column(String(255), nullable=False)
    
    # Trip interval as entered
    departure_date = Column(Date, nullable=False)
    departure_time = Column(Time, nullable=True)
    return_date = Column(Date, nullable=False)
    return_time = Column(Time, nullable=True)
    
    # Trip interval as instants, half-open [departure_at, return_at)
    departure_at = Column(UTCDateTime, nullable=False, index=True)
    return_at = Column(UTCDateTime, nullable=False, index=True)
    
    # Trip details
    destination = Column(String(255), nullable=False)
    purpose = Column(Text, nullable=False)
    notes = Column(String(255), nullable=True)
    passenger_name = Column(Text, nullable=True)
    passenger_count = Column(Integer, default=1, nullable=False)
    
    # Status and assignment
    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=True, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=True, index=True)
    driver_must_wait = Column(Boolean, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    
    # Processing trail
    submitted_at = Column(UTCDateTime, nullable=False)
    processed_at = Column(UTCDateTime, nullable=True)
    processed_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    modified_at = Column(UTCDateTime, nullable=True)
    
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("return_at > departure_at", name="ck_bookings_return_after_departure"),
        CheckConstraint("passenger_count >= 1", name="ck_bookings_passenger_count_positive"),
    )
    
    def __repr__(self):
        return f"<Booking(id={self.id}, code='{self.booking_code}', status='{self.status.value}')>"
