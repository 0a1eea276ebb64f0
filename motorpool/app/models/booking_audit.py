"""
Booking audit trail model.

One immutable row per booking state transition, written in the same
transaction as the transition itself.
"""

from sqlalchemy import Column, Integer, ForeignKey, JSON, Enum
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime
from motorpool.app.models.enums import BookingAuditAction


class BookingAuditEntry(Base):
    """
    Audit entry for a booking transition.
    
    Never updated or deleted. Entries for one booking are ordered by
    (timestamp, id); the autoincrement id breaks ties between transitions
    committed within the same clock tick.
    """
    __tablename__ = "booking_audit_trail"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    action = Column(Enum(BookingAuditAction), nullable=False, index=True)
    
    # Snapshots (None for old_values on creation)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=False)
    
    timestamp = Column(UTCDateTime, server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<BookingAuditEntry(id={self.id}, booking_id={self.booking_id}, action='{self.action.value}')>"
