"""
Driver database model.

Drivers are never hard-deleted; deactivation keeps historical
bookings pointing at a valid row.
"""

from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.sql import func
from motorpool.app.db.session import Base
from motorpool.app.db.types import UTCDateTime


class Driver(Base):
    """
    Driver model.
    
    assignment_version is bumped every time a booking assignment naming
    this driver is committed (see services.resource_claims).
    """
    __tablename__ = "drivers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    assignment_version = Column(Integer, default=0, nullable=False)
    
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    
    @property
    def display_name(self) -> str:
        if self.phone:
            return f"{self.name} ({self.phone})"
        return self.name
    
    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}', active={self.is_active})>"
