"""
Notification Dead Letter Model.

Stores booking notices the notifier failed to deliver, for inspection and retry.
"""

from sqlalchemy import Column, Integer, String, Text, JSON, Enum
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime
import enum


class DLQStatus(str, enum.Enum):
    FAILED = "FAILED"
    RETRYING = "RETRYING"
    DELIVERED = "DELIVERED"


class NotificationDeadLetter(Base):
    """
    Dead letter table.
    Captures failed notification dispatches.
    """
    __tablename__ = "notification_dead_letters"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    event = Column(String(50), nullable=False, index=True)  # created / approved / rejected / modified
    booking_code = Column(String(5), nullable=True, index=True)
    error_message = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False)  # Serialized BookingNotice
    
    status = Column(Enum(DLQStatus), default=DLQStatus.FAILED, nullable=False, index=True)
    retry_count = Column(Integer, default=0, nullable=False)
    
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    last_retry_at = Column(UTCDateTime, nullable=True)
    
    def __repr__(self):
        return f"<NotificationDeadLetter(id={self.id}, event='{self.event}', status='{self.status}')>"
